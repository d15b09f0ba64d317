"""
Shared fixtures for AI Clinical Pharmacist tests.
"""

import io
import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from clinpharm.api.middleware import limiter
from clinpharm.core.llm_engine import LLMEngine
from clinpharm.main import app
from clinpharm.services.analyzer import ClinicalAnalyzer, get_analyzer


SAMPLE_ANALYSIS = {
    "potentialErrors": [
        {
            "errorType": "Contraindication",
            "riskLevel": "High",
            "error": "Metformin prescribed despite eGFR of 25 mL/min/1.73m2.",
            "explanation": "KDIGO advises stopping metformin when eGFR falls below 30."
        },
        {
            "errorType": "Drug-Drug Interaction",
            "riskLevel": "Moderate",
            "error": "Lisinopril with spironolactone raises hyperkalemia risk.",
            "explanation": "Both agents reduce potassium excretion; monitor K+."
        }
    ],
    "drugInformation": [
        {
            "drugName": "Metformin (Glucophage)",
            "drugClass": "Biguanide",
            "mechanismOfAction": "Decreases hepatic glucose production.",
            "indication": "Type 2 diabetes mellitus",
            "prescribedDose": "500 mg PO BID",
            "standardDose": "500-1000 mg PO BID",
            "adverseEffects": "GI upset, lactic acidosis (rare)",
            "monitoring": "eGFR, vitamin B12",
            "precautions": "Contraindicated when eGFR < 30"
        }
    ],
    "labInterpretation": [
        {
            "parameter": "eGFR",
            "value": "25",
            "unit": "mL/min/1.73m2",
            "status": "Low",
            "interpretation": "Stage 4 CKD; renal dose adjustment required."
        }
    ]
}

EMPTY_ANALYSIS = {
    "potentialErrors": [],
    "drugInformation": [],
    "labInterpretation": []
}


def make_png(width: int = 64, height: int = 64, mode: str = "RGB") -> bytes:
    """Create an in-memory PNG image."""
    buf = io.BytesIO()
    Image.new(mode, (width, height), "white").save(buf, format="PNG")
    return buf.getvalue()


def make_genai_client(text=None, side_effect=None) -> MagicMock:
    """Fake google-genai client whose async generate_content returns ``text``."""
    client = MagicMock()
    response = MagicMock()
    response.text = text
    client.aio.models.generate_content = AsyncMock(
        return_value=response,
        side_effect=side_effect
    )
    return client


@pytest.fixture(autouse=True)
def disable_rate_limit():
    """Keep the shared limiter out of the way between tests."""
    limiter.enabled = False
    yield
    limiter.enabled = True


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def genai_client():
    """Fake client returning the sample analysis."""
    return make_genai_client(text=json.dumps(SAMPLE_ANALYSIS))


@pytest.fixture
def engine(genai_client):
    return LLMEngine(api_key="test-key", model="gemini-test", client=genai_client)


@pytest.fixture
def client(engine):
    """Test client with the analyzer wired to the fake Gemini client."""
    app.dependency_overrides[get_analyzer] = lambda: ClinicalAnalyzer(engine=engine)
    yield TestClient(app)
    app.dependency_overrides.clear()
