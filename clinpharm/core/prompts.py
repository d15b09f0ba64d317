"""
Prompt and response contract for the clinical pharmacist model call.

The schema below is handed to Gemini as ``response_schema`` so the model
replies with a JSON object matching ``clinpharm.models.schemas.AnalysisResult``.
"""

from google.genai import types

from clinpharm.models.schemas import LabStatus, RiskLevel


def _string(description: str) -> types.Schema:
    return types.Schema(type=types.Type.STRING, description=description)


def _enum(values: list[str], description: str) -> types.Schema:
    return types.Schema(type=types.Type.STRING, enum=values, description=description)


def _object_array(
    description: str,
    properties: dict[str, types.Schema]
) -> types.Schema:
    return types.Schema(
        type=types.Type.ARRAY,
        description=description,
        items=types.Schema(
            type=types.Type.OBJECT,
            properties=properties,
            required=list(properties),
        ),
    )


POTENTIAL_ERROR_PROPERTIES = {
    "errorType": _string(
        "Category of error (e.g., 'Drug-Drug Interaction', 'Incorrect Dose', "
        "'Contraindication')."
    ),
    "riskLevel": _enum(
        [level.value for level in RiskLevel],
        "Clinical risk level of the error."
    ),
    "error": _string("Concise description of the identified medication error."),
    "explanation": _string(
        "Detailed clinical rationale for the error, referencing guidelines "
        "(e.g., WHO, KDIGO) and patient data (e.g., lab values) where applicable."
    ),
}

DRUG_INFO_PROPERTIES = {
    "drugName": _string("Generic and (if available) brand name."),
    "drugClass": _string("Pharmacological class of the drug."),
    "mechanismOfAction": _string("Brief explanation of how the drug works."),
    "indication": _string("Primary reason for prescription."),
    "prescribedDose": _string("Dose and frequency found in the document."),
    "standardDose": _string("Typical standard dose for the indication."),
    "adverseEffects": _string("Common and significant adverse effects."),
    "monitoring": _string("Key lab parameters or signs to monitor."),
    "precautions": _string(
        "Important precautions (e.g., pregnancy, renal/hepatic impairment)."
    ),
}

LAB_VALUE_PROPERTIES = {
    "parameter": _string(
        "Name of the lab parameter (e.g., 'Creatinine', 'Hemoglobin')."
    ),
    "value": _string("The reported value of the lab parameter."),
    "unit": _string("The unit of measurement (e.g., 'mg/dL', 'g/dL')."),
    "status": _enum(
        [status.value for status in LabStatus],
        "Status of the lab value."
    ),
    "interpretation": _string(
        "Clinical significance of the value and its potential impact on "
        "drug therapy."
    ),
}

ANALYSIS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "potentialErrors": _object_array(
            "List of potential medication errors with clinical explanations.",
            POTENTIAL_ERROR_PROPERTIES,
        ),
        "drugInformation": _object_array(
            "Professional explanation for each prescribed drug.",
            DRUG_INFO_PROPERTIES,
        ),
        "labInterpretation": _object_array(
            "Interpretation of lab values found in the document.",
            LAB_VALUE_PROPERTIES,
        ),
    },
    required=["potentialErrors", "drugInformation", "labInterpretation"],
)


BASE_PROMPT = """
Act as an expert AI Clinical Pharmacist. Your task is to analyze the provided medical information with the highest degree of clinical accuracy.
Your analysis must be structured according to the provided JSON schema and based on established clinical guidelines (e.g., WHO, NICE, KDIGO).

1.  **Medication Error Detection:** Scrutinize all prescribed medications. Identify and report any potential errors including, but not limited to:
    -   Incorrect drug, dose, frequency, or duration.
    -   Significant drug-drug interactions.
    -   Contraindications based on diagnosis or lab values (e.g., Metformin with low eGFR).
    -   Duplicate therapy.
    -   Allergy-related errors if information is available.
    For each error, specify the type, assess the clinical risk level (Low, Moderate, High), and provide a clear, concise explanation referencing clinical principles or guidelines.

2.  **Lab Value Interpretation:** If lab results are present, identify any abnormal values. For each, state the parameter, its value, status (Normal, Low, High), and its clinical significance, especially in relation to the prescribed medications.

3.  **Drug-wise Professional Explanation:** For EACH drug identified, provide a comprehensive professional summary covering:
    -   Drug Name (Generic/Brand)
    -   Class
    -   Mechanism of Action
    -   Indication (why it's used)
    -   Prescribed Dose vs. Standard Dose
    -   Key Adverse Effects
    -   Essential Lab Monitoring
    -   Special Precautions (e.g., renal/hepatic adjustments).

If a section is not applicable (e.g., no lab results), return an empty array for that key. Your output must be nothing but a valid JSON object that strictly conforms to the schema.
""".strip()


def build_image_prompt() -> str:
    """Prompt sent alongside an uploaded document image."""
    return f"{BASE_PROMPT}\n\nThe medical information is in the attached image."


def build_text_prompt(text: str) -> str:
    """Prompt embedding typed or dictated medical text."""
    return (
        f"{BASE_PROMPT}\n\nHere is the medical text to analyze:\n\n"
        f"---\n{text}\n---"
    )
