from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator


class CheckoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    customerID: Optional[int] = None
    operatorID: Optional[int] = None
    startDate: Optional[date] = None
    expectedReturnDate: Optional[date] = None

    @field_validator("customerID", "operatorID", "startDate", "expectedReturnDate", mode="before")
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def to_form(self) -> dict:
        return {
            "customer_id": self.customerID,
            "operator_id": self.operatorID,
            "start_date": self.startDate,
            "expected_return_date": self.expectedReturnDate,
        }


class ConfirmRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    confirmed: bool = False
