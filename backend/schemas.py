import json
import math
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from errors import SchemaValidationError


class CipherHistoryCreate(BaseModel):
    """Insert payload for a cipher history record (id and createdAt are assigned by storage)"""
    model_config = ConfigDict(populate_by_name=True)

    operation: Literal['encrypt', 'decrypt']
    algorithm: str = Field(..., min_length=1)
    mode: str = Field(..., min_length=1)
    key_size: str = Field(..., alias='keySize', min_length=1)
    input_length: int = Field(..., alias='inputLength', ge=0)
    output_length: int = Field(..., alias='outputLength', ge=0)
    processing_time: str = Field(..., alias='processingTime')
    input_text: Optional[str] = Field(default=None, alias='inputText')
    output_text: Optional[str] = Field(default=None, alias='outputText')
    user_id: Optional[int] = Field(default=None, alias='userId')

    @field_validator('key_size', 'processing_time', mode='before')
    @classmethod
    def stringify_numbers(cls, value):
        # Browsers often send these as numbers
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator('processing_time')
    @classmethod
    def check_decimal(cls, value):
        try:
            seconds = float(value)
        except ValueError:
            raise ValueError('processingTime must be a decimal number of seconds')
        if not math.isfinite(seconds):
            raise ValueError('processingTime must be a finite number of seconds')
        if seconds < 0:
            raise ValueError('processingTime must not be negative')
        return value


def parse_history(payload):
    """Validate a raw JSON payload, raising SchemaValidationError on failure"""
    try:
        return CipherHistoryCreate.model_validate(payload)
    except PydanticValidationError as e:
        # Round-trip through JSON so error contexts are always serializable
        raise SchemaValidationError('Invalid data format', errors=json.loads(e.json(include_url=False))) from e
