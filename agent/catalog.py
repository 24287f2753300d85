"""Closed catalog of assistant actions and the per-action copy tables.

Every table keyed by ``ClinicAction`` that must be total is checked at import
time, so adding a member without its default sentence fails loudly.
"""
from __future__ import annotations

from enum import Enum
from typing import Dict, Optional


class ClinicAction(str, Enum):
    VIEW_NEXT_APPOINTMENT = "view_next_appointment"
    RESCHEDULE_APPOINTMENT = "reschedule_appointment"
    BOOK_APPOINTMENT = "book_appointment"
    VIEW_UPCOMING_APPOINTMENTS = "view_upcoming_appointments"
    VIEW_REMAINING_PROCEDURES = "view_remaining_procedures"
    VIEW_TREATMENT_PROGRESS = "view_treatment_progress"
    SEND_MESSAGE_TO_DOCTOR = "send_message_to_doctor"
    SEND_MESSAGE_TO_FRONT_DESK = "send_message_to_front_desk"
    VIEW_UNPAID_INVOICES = "view_unpaid_invoices"
    VIEW_PAST_INVOICES = "view_past_invoices"
    VIEW_ALL_INVOICES = "view_all_invoices"
    VIEW_PROCEDURE_PRICE = "view_procedure_price"
    VIEW_PRICE_LIST = "view_price_list"
    VIEW_TREATMENT_PLAN_DETAILS = "view_treatment_plan_details"
    VIEW_NEXT_PROCEDURE = "view_next_procedure"
    VIEW_COMPLETED_TREATMENTS = "view_completed_treatments"
    REMIND_APPOINTMENT = "remind_appointment"
    CANCEL_APPOINTMENT = "cancel_appointment"
    VIEW_PROMOTIONS = "view_promotions"
    VIEW_AVAILABLE_SLOTS = "view_available_slots"
    ADD_TO_CALENDAR = "add_to_calendar"
    VIEW_MESSAGES = "view_messages"
    UPDATE_CONTACT_INFO = "update_contact_info"
    VIEW_PROCEDURE_DETAILS = "view_procedure_details"
    DOWNLOAD_INVOICE = "download_invoice"
    VIEW_DENTAL_HISTORY = "view_dental_history"
    VIEW_NEXT_TREATMENT_STEP = "view_next_treatment_step"
    VIEW_ASSIGNED_DOCTOR = "view_assigned_doctor"
    CHECK_APPOINTMENT_PROCEDURES = "check_appointment_procedures"
    VIEW_WEEKEND_SLOTS = "view_weekend_slots"
    GENERAL_RESPONSE = "general_response"


_KNOWN = frozenset(a.value for a in ClinicAction)

# Actions that change persisted state and therefore pass the confirmation gate
STATE_CHANGING = frozenset({ClinicAction.RESCHEDULE_APPOINTMENT, ClinicAction.CANCEL_APPOINTMENT})

# Structured messages of these actions embed appointment snapshots
APPOINTMENT_SNAPSHOT_ACTIONS = frozenset(
    {
        ClinicAction.VIEW_UPCOMING_APPOINTMENTS,
        ClinicAction.VIEW_NEXT_APPOINTMENT,
        ClinicAction.RESCHEDULE_APPOINTMENT,
    }
)


def is_known(action_id: object) -> bool:
    return isinstance(action_id, str) and action_id in _KNOWN


def coerce(action_id: object) -> ClinicAction:
    """Map any identifier onto the catalog; unknown values become ``general_response``."""
    if is_known(action_id):
        return ClinicAction(action_id)
    return ClinicAction.GENERAL_RESPONSE


_DEFAULT_RESPONSES: Dict[ClinicAction, str] = {
    ClinicAction.VIEW_NEXT_APPOINTMENT: "Let me check your next appointment for you.",
    ClinicAction.RESCHEDULE_APPOINTMENT: "I'll help you reschedule your appointment.",
    ClinicAction.BOOK_APPOINTMENT: "I'll help you book a new appointment.",
    ClinicAction.VIEW_UPCOMING_APPOINTMENTS: "Let me show you your upcoming appointments.",
    ClinicAction.VIEW_REMAINING_PROCEDURES: "Let me check what procedures are remaining in your treatment plan.",
    ClinicAction.VIEW_TREATMENT_PROGRESS: "Let me show you your treatment progress.",
    ClinicAction.SEND_MESSAGE_TO_DOCTOR: "I'll send a message to your dentist.",
    ClinicAction.SEND_MESSAGE_TO_FRONT_DESK: "I'll send a message to the front desk.",
    ClinicAction.VIEW_UNPAID_INVOICES: "Let me check your unpaid invoices.",
    ClinicAction.VIEW_PAST_INVOICES: "Let me show you your past invoices.",
    ClinicAction.VIEW_ALL_INVOICES: "Let me show you all of your invoices.",
    ClinicAction.VIEW_PROCEDURE_PRICE: "Let me check the price for that procedure.",
    ClinicAction.VIEW_PRICE_LIST: "Let me show you our price list.",
    ClinicAction.VIEW_TREATMENT_PLAN_DETAILS: "Let me show you the details of your treatment plan.",
    ClinicAction.VIEW_NEXT_PROCEDURE: "Let me check what your next procedure is.",
    ClinicAction.VIEW_COMPLETED_TREATMENTS: "Let me show you your completed treatments.",
    ClinicAction.REMIND_APPOINTMENT: "I'll send you a reminder about your appointment.",
    ClinicAction.CANCEL_APPOINTMENT: "I'll help you cancel your appointment.",
    ClinicAction.VIEW_PROMOTIONS: "Let me check for available promotions.",
    ClinicAction.VIEW_AVAILABLE_SLOTS: "Let me check available time slots for you.",
    ClinicAction.ADD_TO_CALENDAR: "I'll add that appointment to your calendar.",
    ClinicAction.VIEW_MESSAGES: "Let me show you your messages.",
    ClinicAction.UPDATE_CONTACT_INFO: "I'll help you update your contact information.",
    ClinicAction.VIEW_PROCEDURE_DETAILS: "Let me show you the details of that procedure.",
    ClinicAction.DOWNLOAD_INVOICE: "I'll help you download that invoice.",
    ClinicAction.VIEW_DENTAL_HISTORY: "Let me show you your dental history.",
    ClinicAction.VIEW_NEXT_TREATMENT_STEP: "Let me check what your next treatment step is.",
    ClinicAction.VIEW_ASSIGNED_DOCTOR: "Let me check who your assigned dentist is.",
    ClinicAction.CHECK_APPOINTMENT_PROCEDURES: "Let me check what procedures are included in that appointment.",
    ClinicAction.VIEW_WEEKEND_SLOTS: "Let me check for weekend availability.",
    ClinicAction.GENERAL_RESPONSE: "I understand. How can I help you further?",
}

# Card titles for the assistant's structured messages. None means "no title".
_ACTION_TITLES: Dict[ClinicAction, Optional[str]] = {
    ClinicAction.VIEW_NEXT_APPOINTMENT: "Next appointment",
    ClinicAction.RESCHEDULE_APPOINTMENT: "Reschedule appointment",
    ClinicAction.BOOK_APPOINTMENT: "",
    ClinicAction.VIEW_UPCOMING_APPOINTMENTS: "Upcoming appointments",
    ClinicAction.VIEW_REMAINING_PROCEDURES: "Remaining procedures",
    ClinicAction.VIEW_TREATMENT_PROGRESS: "Treatment progress",
    ClinicAction.SEND_MESSAGE_TO_DOCTOR: "Message sent to your dentist",
    ClinicAction.SEND_MESSAGE_TO_FRONT_DESK: None,
    ClinicAction.VIEW_UNPAID_INVOICES: "Unpaid invoices",
    ClinicAction.VIEW_PAST_INVOICES: "Past invoices",
    ClinicAction.VIEW_ALL_INVOICES: "Invoices",
    ClinicAction.VIEW_PROCEDURE_PRICE: "Procedure price",
    ClinicAction.VIEW_PRICE_LIST: "",
    ClinicAction.VIEW_TREATMENT_PLAN_DETAILS: "Treatment plans",
    ClinicAction.VIEW_NEXT_PROCEDURE: "Next procedure",
    ClinicAction.VIEW_COMPLETED_TREATMENTS: "Completed treatments",
    ClinicAction.REMIND_APPOINTMENT: "Appointment reminder sent",
    ClinicAction.CANCEL_APPOINTMENT: "Select appointment to cancel",
    ClinicAction.VIEW_PROMOTIONS: "",
    ClinicAction.VIEW_AVAILABLE_SLOTS: "Available time slots",
    ClinicAction.ADD_TO_CALENDAR: "Added to calendar",
    ClinicAction.VIEW_MESSAGES: "Messages",
    ClinicAction.UPDATE_CONTACT_INFO: "Your contact information",
    ClinicAction.VIEW_PROCEDURE_DETAILS: "Procedure details",
    ClinicAction.DOWNLOAD_INVOICE: "Invoice download",
    ClinicAction.VIEW_DENTAL_HISTORY: "Dental history",
    ClinicAction.VIEW_NEXT_TREATMENT_STEP: "Next treatment step",
    ClinicAction.VIEW_ASSIGNED_DOCTOR: "Assigned doctor",
    ClinicAction.CHECK_APPOINTMENT_PROCEDURES: "Appointment procedures",
    ClinicAction.VIEW_WEEKEND_SLOTS: "Weekend available slots",
    ClinicAction.GENERAL_RESPONSE: (
        "I'm here to help! Tell me what you'd like to do.\n\n"
        "Examples:\n"
        "• \"Provide me the invoices list\"\n"
        "• \"Show my upcoming appointments\""
    ),
}

_EMPTY_STATE_TITLES: Dict[ClinicAction, str] = {
    ClinicAction.VIEW_NEXT_APPOINTMENT: "No appointments found",
    ClinicAction.VIEW_UPCOMING_APPOINTMENTS: "No appointments found",
    ClinicAction.RESCHEDULE_APPOINTMENT: "No appointments found",
    ClinicAction.CANCEL_APPOINTMENT: "You don't have any appointments to cancel.",
    ClinicAction.VIEW_REMAINING_PROCEDURES: "No remaining procedures",
    ClinicAction.VIEW_UNPAID_INVOICES: "No unpaid invoices",
    ClinicAction.VIEW_PAST_INVOICES: "Sorry, but we don't have any past invoices yet.",
    ClinicAction.VIEW_ALL_INVOICES: "No invoices found",
    ClinicAction.VIEW_TREATMENT_PLAN_DETAILS: "No treatment plans found",
    ClinicAction.VIEW_NEXT_PROCEDURE: "No upcoming procedures",
    ClinicAction.VIEW_COMPLETED_TREATMENTS: "No completed treatments",
    ClinicAction.VIEW_ASSIGNED_DOCTOR: "No assigned doctor",
    ClinicAction.VIEW_PROMOTIONS: "No promotions available",
    ClinicAction.VIEW_AVAILABLE_SLOTS: "No available time slots",
    ClinicAction.VIEW_MESSAGES: "No messages found",
    ClinicAction.UPDATE_CONTACT_INFO: "We could not load your contact information.",
    ClinicAction.VIEW_PROCEDURE_DETAILS: "No procedures found",
    ClinicAction.VIEW_DENTAL_HISTORY: "No dental history on file",
    ClinicAction.VIEW_NEXT_TREATMENT_STEP: "No upcoming treatment steps",
    ClinicAction.CHECK_APPOINTMENT_PROCEDURES: "No procedures in this appointment",
}


def _require_total(table: Dict[ClinicAction, object], name: str) -> None:
    missing = [a.value for a in ClinicAction if a not in table]
    if missing:
        raise RuntimeError(f"{name} is missing entries for: {', '.join(missing)}")


_require_total(_DEFAULT_RESPONSES, "default responses")
_require_total(_ACTION_TITLES, "action titles")


def default_response(action: ClinicAction) -> str:
    return _DEFAULT_RESPONSES[ClinicAction(action)]


def action_title(action: ClinicAction) -> Optional[str]:
    return _ACTION_TITLES[ClinicAction(action)]


def empty_state_title(action: ClinicAction) -> Optional[str]:
    return _EMPTY_STATE_TITLES.get(ClinicAction(action))
