"""
Payload validation for customers and orders.

validate_* functions return every violation found (empty list == valid).
parse_* functions run the same checks, raise ValidationError on failure and
otherwise return a normalized, typed request struct. Nothing here touches the
database: an order's customerId is only checked for shape, the foreign key
does the rest.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Any

from app.crm.constants import CUSTOMER_NAME_MIN_LENGTH, MAX_DB_INT
from app.crm.errors import ValidationError, Violation

# local@domain.tld, no whitespace, exactly one "@", dot-separated domain labels
_EMAIL_RE = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+"
    r"@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$"
)

_MISSING = object()


@dataclass(frozen=True)
class CustomerFields:
    name: str
    email: str
    age: float | None = None
    # False when the payload omitted "age"; updates then keep the stored value.
    age_provided: bool = False

    def values(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "email": self.email}
        if self.age_provided:
            out["age"] = self.age
        return out


@dataclass(frozen=True)
class OrderRequest:
    customer_id: int
    quantity: int


def is_valid_email(value: str) -> bool:
    if not value or len(value) > 320:
        return False
    if ".." in value.split("@")[0]:
        return False
    return bool(_EMAIL_RE.match(value))


def _is_int(value: Any) -> bool:
    # bool is an int subclass; JSON true/false are never ids or quantities
    return isinstance(value, int) and not isinstance(value, bool)


def _is_db_int(value: Any) -> bool:
    """Positive integer that fits the Integer columns."""
    return _is_int(value) and 1 <= value <= MAX_DB_INT


def _is_number(value: Any) -> bool:
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    # JSON NaN/Infinity parse as floats; huge ints do not fit a float at all
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _body_violation(payload: Any) -> list[Violation]:
    if not isinstance(payload, dict):
        return [Violation("body", "Request body must be a JSON object.")]
    return []


def validate_customer_payload(payload: Any, *, customer_id: int | None = None) -> list[Violation]:
    """
    customer_id=None validates an insert; otherwise an update of that customer.
    """
    errs = _body_violation(payload)
    if errs:
        return errs

    body_id = payload.get("id", _MISSING)
    if customer_id is None:
        if body_id is not _MISSING and body_id is not None:
            errs.append(Violation("id", "Id is assigned by the server and must not be supplied."))
    elif body_id is not _MISSING and body_id is not None:
        if not _is_int(body_id) or body_id != customer_id:
            errs.append(Violation("id", "Id in body must match the id in the path."))

    name = payload.get("name")
    if not isinstance(name, str):
        errs.append(Violation("name", "Name is required."))
    elif len(name.strip()) < CUSTOMER_NAME_MIN_LENGTH:
        errs.append(Violation("name", f"Name must be at least {CUSTOMER_NAME_MIN_LENGTH} characters."))

    email = payload.get("email")
    if not isinstance(email, str) or not email.strip():
        errs.append(Violation("email", "Email is required."))
    elif not is_valid_email(email.strip()):
        errs.append(Violation("email", "Email must be a valid email address."))

    age = payload.get("age")
    if age is not None:
        if not _is_number(age):
            errs.append(Violation("age", "Age must be a number."))
        elif age < 0:
            errs.append(Violation("age", "Age must be greater than or equal to 0."))

    return errs


def parse_customer_payload(payload: Any, *, customer_id: int | None = None) -> CustomerFields:
    errs = validate_customer_payload(payload, customer_id=customer_id)
    if errs:
        raise ValidationError(errs)
    age = payload.get("age")
    return CustomerFields(
        name=payload["name"].strip(),
        email=payload["email"].strip(),
        age=float(age) if age is not None else None,
        age_provided="age" in payload,
    )


def validate_order_payload(payload: Any) -> list[Violation]:
    errs = _body_violation(payload)
    if errs:
        return errs

    if not _is_db_int(payload.get("customerId")):
        errs.append(Violation("customerId", f"Customer id must be an integer between 1 and {MAX_DB_INT}."))

    if not _is_db_int(payload.get("quantity")):
        errs.append(Violation("quantity", f"Quantity must be a positive integer no greater than {MAX_DB_INT}."))

    return errs


def parse_order_payload(payload: Any) -> OrderRequest:
    errs = validate_order_payload(payload)
    if errs:
        raise ValidationError(errs)
    return OrderRequest(customer_id=payload["customerId"], quantity=payload["quantity"])


def parse_id(raw: str | int, field: str = "id") -> int:
    """Path ids are decimal integers in 1..MAX_DB_INT; anything else is a validation failure."""
    if _is_int(raw):
        value = raw
    else:
        text = str(raw).strip()
        if not text.isdecimal():
            raise ValidationError([Violation(field, f"{field} must be a decimal integer.")])
        # more digits than MAX_DB_INT has can never fit; also keeps int() off huge strings
        value = int(text) if len(text) <= len(str(MAX_DB_INT)) else MAX_DB_INT + 1
    if not _is_db_int(value):
        raise ValidationError([Violation(field, f"{field} must be between 1 and {MAX_DB_INT}.")])
    return value  # type: ignore[return-value]
