"""
HTML rendering for AI Clinical Pharmacist results.

Turns an AnalysisResult into the three-tab fragment the browser swaps
into the page, and renders the error banner.
"""

from jinja2 import Environment

from clinpharm.models.schemas import AnalysisResult, LabStatus, RiskLevel
from clinpharm.utils.logger import get_logger

logger = get_logger("result_renderer")


class ResultRenderer:
    """
    Renders analysis results as HTML fragments.

    The fragment always contains exactly three tabs (errors, drugs,
    labs). A tab whose list is empty shows its "no findings" message.
    All model text is autoescaped.
    """

    TABS = [
        ("errors", "Error Analysis"),
        ("drugs", "Drug Deep-Dive"),
        ("labs", "Lab Insights"),
    ]

    EMPTY_MESSAGES = {
        "errors": "No potential medication errors were identified based on the provided document.",
        "drugs": "No specific drug information could be extracted from the document.",
        "labs": "No lab values were identified or interpreted from the document.",
    }

    RISK_CLASSES = {
        RiskLevel.HIGH: "risk-high",
        RiskLevel.MODERATE: "risk-moderate",
        RiskLevel.LOW: "risk-low",
    }

    LAB_STATUS_CLASSES = {
        LabStatus.HIGH: "lab-high",
        LabStatus.LOW: "lab-low",
        LabStatus.ABNORMAL: "lab-abnormal",
        LabStatus.NORMAL: "lab-normal",
    }

    RESULT_TEMPLATE = """
<section class="results card" data-results>
  <nav class="tab-nav" role="tablist" aria-label="Tabs">
    {% for key, label in tabs %}
    <button type="button" role="tab" class="tab-button{% if key == active_tab %} is-active{% endif %}"
            data-tab="{{ key }}" aria-selected="{{ 'true' if key == active_tab else 'false' }}">
      <span class="tab-icon tab-icon-{{ key }}" aria-hidden="true"></span><span>{{ label }}</span>
    </button>
    {% endfor %}
  </nav>

  <div class="tab-panel" role="tabpanel" data-tab-panel="errors"{% if active_tab != "errors" %} hidden{% endif %}>
    <h3>Potential Medication Errors</h3>
    {% if result.potential_errors %}
    {% for item in result.potential_errors %}
    <article class="error-card {{ risk_classes[item.risk_level] }}">
      <div class="error-card-header">
        <p class="error-type">{{ item.error_type }}</p>
        <span class="risk-badge {{ risk_classes[item.risk_level] }}">{{ item.risk_level.value }} Risk</span>
      </div>
      <p class="error-summary">{{ item.error }}</p>
      <div class="rationale">
        <p class="rationale-title"><span class="rationale-icon" aria-hidden="true"></span>Clinical Rationale</p>
        <p>{{ item.explanation }}</p>
      </div>
    </article>
    {% endfor %}
    {% else %}
    <p class="empty-message empty-success">{{ empty_messages.errors }}</p>
    {% endif %}
  </div>

  <div class="tab-panel" role="tabpanel" data-tab-panel="drugs"{% if active_tab != "drugs" %} hidden{% endif %}>
    <h3>Prescribed Drug Information</h3>
    {% if result.drug_information %}
    {% for drug in result.drug_information %}
    <article class="drug-card">
      <h4>{{ drug.drug_name }}</h4>
      <p class="drug-class">{{ drug.drug_class }}</p>
      <dl class="drug-grid">
        <div><dt>Indication:</dt><dd>{{ drug.indication }}</dd></div>
        <div><dt>Mechanism:</dt><dd>{{ drug.mechanism_of_action }}</dd></div>
        <div><dt>Dosing:</dt><dd>Prescribed: {{ drug.prescribed_dose }} (Standard: {{ drug.standard_dose }})</dd></div>
        <div><dt>Monitoring:</dt><dd>{{ drug.monitoring }}</dd></div>
        <div class="wide"><dt>Adverse Effects:</dt><dd>{{ drug.adverse_effects }}</dd></div>
        <div class="wide"><dt>Precautions:</dt><dd>{{ drug.precautions }}</dd></div>
      </dl>
    </article>
    {% endfor %}
    {% else %}
    <p class="empty-message">{{ empty_messages.drugs }}</p>
    {% endif %}
  </div>

  <div class="tab-panel" role="tabpanel" data-tab-panel="labs"{% if active_tab != "labs" %} hidden{% endif %}>
    <h3>Lab Value Interpretation</h3>
    {% if result.lab_interpretation %}
    <div class="table-wrap">
      <table class="lab-table">
        <thead>
          <tr><th scope="col">Parameter</th><th scope="col">Result</th><th scope="col">Interpretation</th></tr>
        </thead>
        <tbody>
          {% for lab in result.lab_interpretation %}
          <tr class="lab-row">
            <td class="lab-parameter">{{ lab.parameter }}</td>
            <td class="{{ lab_status_classes[lab.status] }}">{{ lab.value }} {{ lab.unit }}</td>
            <td>{{ lab.interpretation }}</td>
          </tr>
          {% endfor %}
        </tbody>
      </table>
    </div>
    {% else %}
    <p class="empty-message">{{ empty_messages.labs }}</p>
    {% endif %}
  </div>
</section>
"""

    ERROR_TEMPLATE = """
<div class="alert alert-error" role="alert" data-error>
  <strong>Error: </strong><span>{{ message }}</span>
</div>
"""

    def __init__(self):
        self._env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)
        self._result_template = self._env.from_string(self.RESULT_TEMPLATE)
        self._error_template = self._env.from_string(self.ERROR_TEMPLATE)

    def render_result(self, result: AnalysisResult, active_tab: str = "errors") -> str:
        """
        Render the three result tabs.

        Args:
            result: Validated analysis
            active_tab: Tab shown first; unknown keys fall back to "errors"

        Returns:
            HTML fragment
        """
        if active_tab not in self.EMPTY_MESSAGES:
            active_tab = "errors"

        html = self._result_template.render(
            result=result,
            tabs=self.TABS,
            active_tab=active_tab,
            empty_messages=self.EMPTY_MESSAGES,
            risk_classes=self.RISK_CLASSES,
            lab_status_classes=self.LAB_STATUS_CLASSES,
        )

        logger.debug(
            "Rendered analysis result",
            potential_errors=len(result.potential_errors),
            drugs=len(result.drug_information),
            lab_values=len(result.lab_interpretation)
        )
        return html

    def render_error(self, message: str) -> str:
        """Render the error banner."""
        return self._error_template.render(message=message)


# Singleton instance
result_renderer = ResultRenderer()
