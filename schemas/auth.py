from __future__ import annotations

from typing import Literal

from pydantic import BaseModel

Role = Literal["patient", "doctor", "admin"]


class Principal(BaseModel):
    user_id: str
    role: Role

    @property
    def is_staff(self) -> bool:
        return self.role in ("doctor", "admin")
