"""
Pydantic schemas for AI Clinical Pharmacist.

Defines the analysis contract returned by the model and the
request/response models for all API endpoints.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, List

from pydantic import BaseModel, Field, ConfigDict, field_validator


# =============================================================================
# Enums
# =============================================================================

class RiskLevel(str, Enum):
    """Clinical risk tier of a detected medication issue."""
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"


class LabStatus(str, Enum):
    """Categorical flag on a lab result."""
    NORMAL = "Normal"
    LOW = "Low"
    HIGH = "High"
    ABNORMAL = "Abnormal"


class InputMode(str, Enum):
    """How the clinician supplied the medical information."""
    UPLOAD = "upload"
    TEXT = "text"
    VOICE = "voice"


# =============================================================================
# Analysis Contract
# =============================================================================

class ContractModel(BaseModel):
    """Base for models exchanged with the LLM (camelCase on the wire)."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)


class PotentialError(ContractModel):
    """A potential medication error with its clinical rationale."""

    error_type: str = Field(
        alias="errorType",
        description="Category of error (e.g. 'Drug-Drug Interaction')"
    )
    risk_level: RiskLevel = Field(
        alias="riskLevel",
        description="Clinical risk level of the error"
    )
    error: str = Field(description="Concise description of the error")
    explanation: str = Field(description="Clinical rationale")


class DrugInfo(ContractModel):
    """Professional summary of one prescribed drug."""

    drug_name: str = Field(alias="drugName")
    drug_class: str = Field(alias="drugClass")
    mechanism_of_action: str = Field(alias="mechanismOfAction")
    indication: str
    prescribed_dose: str = Field(alias="prescribedDose")
    standard_dose: str = Field(alias="standardDose")
    adverse_effects: str = Field(alias="adverseEffects")
    monitoring: str
    precautions: str


class LabValue(ContractModel):
    """Interpretation of a single lab parameter."""

    parameter: str
    value: str
    unit: str
    status: LabStatus
    interpretation: str


class AnalysisResult(ContractModel):
    """Structured clinical analysis; each list may be empty."""

    potential_errors: List[PotentialError] = Field(
        default_factory=list,
        alias="potentialErrors"
    )
    drug_information: List[DrugInfo] = Field(
        default_factory=list,
        alias="drugInformation"
    )
    lab_interpretation: List[LabValue] = Field(
        default_factory=list,
        alias="labInterpretation"
    )

    @field_validator(
        "potential_errors", "drug_information", "lab_interpretation",
        mode="before"
    )
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value

    @property
    def is_empty(self) -> bool:
        """True when the model reported nothing in any section."""
        return not (
            self.potential_errors
            or self.drug_information
            or self.lab_interpretation
        )


# =============================================================================
# Requests
# =============================================================================

class TextAnalysisRequest(BaseModel):
    """Request to analyze typed or dictated medical text."""

    text: str = Field(description="Medical text (prescription, notes, labs)")
    mode: InputMode = Field(
        default=InputMode.TEXT,
        description="Whether the text was typed or dictated"
    )

    @field_validator("mode")
    @classmethod
    def _text_modes_only(cls, value: InputMode) -> InputMode:
        if value == InputMode.UPLOAD:
            raise ValueError("Use /analyze/document for uploaded images")
        return value


class DocumentDataRequest(BaseModel):
    """Request carrying a document image as a base64 data URL."""

    image: str = Field(
        description="Image as 'data:<mime>;base64,<payload>'"
    )
    filename: Optional[str] = Field(
        default=None,
        description="Original filename, used for validation and logs"
    )


# =============================================================================
# Responses
# =============================================================================

class AnalysisResponse(BaseModel):
    """Analysis result with request metadata."""

    result: AnalysisResult = Field(description="Structured clinical analysis")
    source: InputMode = Field(description="Input mode that produced the result")
    model: str = Field(description="Model that produced the analysis")
    processing_time_ms: Optional[int] = Field(
        default=None,
        description="Processing time in milliseconds"
    )
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(from_attributes=True)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(default="healthy")
    version: str = Field(description="Application version")
    llm_configured: bool = Field(description="Whether the model API key is set")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(from_attributes=True)


class ClientConfigResponse(BaseModel):
    """Settings the browser needs to drive input capture."""

    speech_language: str
    max_file_size_bytes: int
    accepted_image_extensions: List[str]
    messages: dict[str, str]


class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(description="Error type")
    message: str = Field(description="Human-readable error message")
    error_code: str = Field(description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(from_attributes=True)
