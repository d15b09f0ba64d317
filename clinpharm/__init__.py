"""
AI Clinical Pharmacist - Medication Review Assistant

A web application that lets clinicians submit a prescription image, typed
notes or a dictated transcript and receive a structured review: potential
medication errors, drug-wise summaries and lab value interpretations.

IMPORTANT: This is a clinical decision support tool. It does not replace
professional medical judgment.
"""

__version__ = "1.0.0"
__author__ = "AI Clinical Pharmacist Team"
