from typing import Any, NamedTuple, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..db.attributes import FetchMode


class ErrorInfo(NamedTuple):
    """Diagnostic triple for the most recent operation"""

    sqlstate: str = "00000"
    driver_code: Optional[Union[int, str]] = None
    message: Optional[str] = None

    @property
    def is_error(self) -> bool:
        return self.sqlstate != "00000"


NO_ERROR = ErrorInfo()


class FetchOptions(BaseModel):
    """Result-shaping mode for query() and Statement.set_fetch_mode()

    ``mode`` is the discriminant; ``column`` only applies to COLUMN and
    ``cls``/``ctor_args`` only to CLASS.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    mode: FetchMode = Field(default=FetchMode.ASSOC, description="Row shape")
    column: int = Field(default=0, ge=0, description="Zero-based column index for COLUMN mode")
    cls: Optional[type] = Field(default=None, description="Row class for CLASS mode")
    ctor_args: Tuple[Any, ...] = Field(default=(), description="Positional constructor arguments for CLASS mode")

    @model_validator(mode="after")
    def check_mode_payload(self) -> "FetchOptions":
        if self.mode == FetchMode.CLASS:
            if self.cls is None:
                raise ValueError("CLASS fetch mode requires cls")
        elif self.cls is not None or self.ctor_args:
            raise ValueError(f"cls/ctor_args are only valid with CLASS fetch mode, not {self.mode.name}")
        if self.mode != FetchMode.COLUMN and self.column != 0:
            raise ValueError(f"column is only valid with COLUMN fetch mode, not {self.mode.name}")
        return self

    @classmethod
    def coerce(cls, fetch: Union["FetchOptions", FetchMode, int]) -> "FetchOptions":
        """Accept a FetchOptions, a FetchMode or its integer value"""
        if isinstance(fetch, FetchOptions):
            return fetch
        return cls(mode=fetch)
