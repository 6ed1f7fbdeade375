"""Domain fixtures shared by the tests: Person -> Address -> City."""

from __future__ import annotations

import enum
from dataclasses import dataclass

from nestfx import ObservableObject


class AustralianState(enum.Enum):
    NSW = 1
    VIC = 2
    QLD = 3
    WA = 4
    SA = 5
    TAS = 6


@dataclass(eq=False)
class City(ObservableObject):
    Name: str | None = None
    State: AustralianState | None = None
    PostCode: int = 0


@dataclass(eq=False)
class Address(ObservableObject):
    Street: str | None = None
    City: City | None = None


@dataclass(eq=False)
class Person(ObservableObject):
    ID: int = 0
    Name: str | None = None
    Address: Address | None = None


def make_person(ID=0, Name=None, street="1 George St", city="Sydney", state=AustralianState.NSW, post_code=2000):
    return Person(ID, Name, Address(street, City(city, state, post_code)))


@dataclass
class Ledger:
    """Does not announce its own changes, but holds an object that does."""

    Owner: Person | None = None
    Total: int = 0


class Opaque:
    """Neither ordered nor printable."""


@dataclass
class Crate:
    Label: str = ""
    Contents: Opaque | None = None


class Account:
    """Plain class described by annotations and properties."""

    number: str
    _secret: str

    def __init__(self, number: str, balance: int = 0) -> None:
        self.number = number
        self._balance = balance

    @property
    def balance(self) -> int:
        return self._balance

    @property
    def overdrawn(self) -> bool:
        return self._balance < 0


class SavingsAccount(Account):
    rate: float
