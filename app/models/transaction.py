# app/models/transaction.py

from typing import Optional, Union
from pydantic import BaseModel, Field

Quantity = Union[int, float, None]


class Seller(BaseModel):
    """A girl scout selling cookies for the troop."""

    id: int
    first_name: str = ""
    last_name: str = ""

    class Config:
        from_attributes = True

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Cookie(BaseModel):
    """A cookie variety offered in a season."""

    abbreviation: str
    name: Optional[str] = None
    price: Optional[float] = None

    class Config:
        from_attributes = True


class InternalTransaction(BaseModel):
    """An order/transaction recorded by the troop."""

    id: Union[int, str, None] = None
    date: Optional[str] = None
    type: Optional[str] = None
    to: Optional[int] = None
    from_: Optional[int] = Field(default=None, alias="from")
    cookies: dict[str, Quantity] = Field(default_factory=dict)
    order_num: Union[str, int, None] = None

    class Config:
        from_attributes = True
        populate_by_name = True
