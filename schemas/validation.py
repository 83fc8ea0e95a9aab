from typing import Optional

from pydantic import BaseModel, Field


class FieldError(BaseModel):
    field: str
    message: str


class ValidationResult(BaseModel):
    errors: list[FieldError] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def first(self) -> Optional[FieldError]:
        """The blocking failure callers surface to the user."""
        return self.errors[0] if self.errors else None

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def add(self, field: str, message: str) -> None:
        self.errors.append(FieldError(field=field, message=message))

    def extend(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        return self

    @classmethod
    def success(cls) -> "ValidationResult":
        return cls()

    @classmethod
    def failure(cls, field: str, message: str) -> "ValidationResult":
        return cls(errors=[FieldError(field=field, message=message)])
