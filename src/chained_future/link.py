"""Link model - the conventional shape of an item in a recurring sequence."""

from __future__ import annotations

import inspect
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, field_validator

T = TypeVar("T")


class Link(BaseModel, Generic[T]):
    """One item of a recurring sequence plus the future of the item after it.

    The default successor picker reads ``next``, so producers can hand out
    Link instances without configuring anything.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    value: T
    next: Any

    @field_validator("next")
    @classmethod
    def _require_awaitable(cls, v: Any) -> Any:
        if not inspect.isawaitable(v):
            raise ValueError(f"next must be awaitable, got {type(v).__name__}")
        return v
