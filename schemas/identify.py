"""
Pydantic schemas for the /identify endpoint
Handles request validation and response serialization
"null" strings and blank values are treated as absent
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from utils.normalize import normalize_email, normalize_phone


def _is_null(v) -> bool:
    return isinstance(v, str) and v.strip().lower() in ['null', '']


class IdentifyRequest(BaseModel):
    """
    Request schema for the /identify endpoint
    Validates that at least one of email or phoneNumber is provided
    Handles "null" strings by converting them to None
    """
    email: Optional[EmailStr] = Field(
        None,
        description="Customer email address",
        examples=["customer@example.com", None]
    )
    phoneNumber: Optional[str] = Field(
        None,
        alias="phoneNumber",  # API uses camelCase
        description="Customer phone number, as a string or a number",
        examples=["+1234567890", "123-456-7890", None]
    )

    @field_validator('email', mode='before')
    @classmethod
    def validate_email(cls, v) -> Optional[str]:
        """
        Clean email input before format validation
        Converts "null" strings to None
        """
        if v is None or _is_null(v):
            return None

        if isinstance(v, str):
            v = v.strip()
            if '@' not in v:
                raise ValueError('Invalid email format: email must contain @')

        return v

    @field_validator('phoneNumber', mode='before')
    @classmethod
    def validate_phone_number(cls, v) -> Optional[str]:
        """
        Accept phone numbers sent as strings or numbers
        Converts "null" strings to None
        """
        if v is None or _is_null(v):
            return None

        if isinstance(v, bool):
            raise ValueError('Phone number must be a string or number')

        # Convert to string if it's a number
        if isinstance(v, float) and v.is_integer():
            v = int(v)  # Remove decimal point
        if isinstance(v, (int, float)):
            v = str(v)

        if not isinstance(v, str):
            raise ValueError('Phone number must be a string or number')

        return v.strip()

    @model_validator(mode='after')
    def validate_at_least_one_field(self):
        """
        Ensure at least one of email or phoneNumber survives normalization
        """
        if normalize_email(self.email) is None and normalize_phone(self.phoneNumber) is None:
            raise ValueError('Either email or phoneNumber must be provided')
        return self

    class Config:
        # Allow both camelCase (API) and snake_case (Python) field names
        populate_by_name = True
        json_schema_extra = {
            "examples": [
                {
                    "email": "customer@example.com",
                    "phoneNumber": "+1234567890"
                },
                {
                    "email": None,
                    "phoneNumber": 1234567890
                },
                {
                    "email": "null",
                    "phoneNumber": "123456"
                }
            ]
        }


class ContactResponse(BaseModel):
    """
    Consolidated view of one identity cluster
    The primary's own email and phone number are listed first
    """
    primaryContatctId: int = Field(
        description="ID of the primary contact"
    )
    emails: List[str] = Field(
        description="All email addresses associated with this contact",
        examples=[["customer@example.com", "customer2@example.com"]]
    )
    phoneNumbers: List[str] = Field(
        description="All phone numbers associated with this contact",
        examples=[["1234567890", "9876543210"]]
    )
    secondaryContactIds: List[int] = Field(
        description="IDs of all secondary contacts linked to the primary, oldest first",
        examples=[[2, 3, 4]]
    )


class IdentifyResponse(BaseModel):
    """
    Response schema for the /identify endpoint
    Contains the consolidated contact information
    """
    contact: ContactResponse = Field(
        description="Consolidated contact information"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "contact": {
                    "primaryContatctId": 1,
                    "emails": ["customer@example.com", "customer2@example.com"],
                    "phoneNumbers": ["1234567890", "9876543210"],
                    "secondaryContactIds": [2, 3]
                }
            }
        }


class ErrorResponse(BaseModel):
    """
    Error response schema for API errors
    """
    error: str = Field(
        description="Error type or category"
    )
    message: str = Field(
        description="Human-readable error message"
    )
    retryable: bool = Field(
        False,
        description="Whether re-sending the same request may succeed"
    )
    details: Optional[Dict[str, Any]] = Field(
        None,
        description="Additional error details"
    )

    class Config:
        json_schema_extra = {
            "examples": [
                {
                    "error": "ValidationError",
                    "message": "Either email or phoneNumber must be provided",
                    "retryable": False,
                    "details": {"field": "root"}
                },
                {
                    "error": "StoreUnavailableError",
                    "message": "Database is currently unavailable. Please try again later.",
                    "retryable": True
                }
            ]
        }
