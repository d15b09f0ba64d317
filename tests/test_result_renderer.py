"""
Tests for the result tab renderer.
"""

from clinpharm.models.schemas import AnalysisResult, LabStatus
from clinpharm.services.result_renderer import ResultRenderer, result_renderer

from tests.conftest import EMPTY_ANALYSIS, SAMPLE_ANALYSIS


class TestResultTabs:
    """Test the three-tab fragment."""

    def test_exactly_three_tabs(self):
        """Every result should render three tab buttons and panels."""
        html = result_renderer.render_result(AnalysisResult.model_validate(SAMPLE_ANALYSIS))

        assert html.count('data-tab="') == 3
        assert html.count('data-tab-panel="') == 3
        for label in ("Error Analysis", "Drug Deep-Dive", "Lab Insights"):
            assert label in html

    def test_errors_tab_active_by_default(self):
        """Only the errors panel should be visible initially."""
        html = result_renderer.render_result(AnalysisResult.model_validate(SAMPLE_ANALYSIS))

        assert 'data-tab-panel="errors">' in html
        assert 'data-tab-panel="drugs" hidden>' in html
        assert 'data-tab-panel="labs" hidden>' in html

    def test_unknown_active_tab_falls_back(self):
        """An unknown tab key should show the errors tab."""
        html = result_renderer.render_result(AnalysisResult(), active_tab="bogus")
        assert 'data-tab-panel="errors">' in html

    def test_content_matches_result(self):
        """Each list item should appear in its tab."""
        html = result_renderer.render_result(AnalysisResult.model_validate(SAMPLE_ANALYSIS))

        assert "High Risk" in html
        assert "Moderate Risk" in html
        assert "Clinical Rationale" in html
        assert "Prescribed: 500 mg PO BID (Standard: 500-1000 mg PO BID)" in html
        assert "25 mL/min/1.73m2" in html
        assert 'class="lab-low"' in html

    def test_every_lab_status_colored(self):
        """Each lab status tier should map to its own color class."""
        labs = [
            dict(SAMPLE_ANALYSIS["labInterpretation"][0], status=status.value)
            for status in LabStatus
        ]
        data = dict(SAMPLE_ANALYSIS, labInterpretation=labs)
        html = result_renderer.render_result(AnalysisResult.model_validate(data))

        assert set(ResultRenderer.LAB_STATUS_CLASSES) == set(LabStatus)
        for css_class in ("lab-high", "lab-low", "lab-abnormal", "lab-normal"):
            assert f'class="{css_class}"' in html

    def test_empty_lists_show_messages(self):
        """Each empty list should show its own no-findings message."""
        html = result_renderer.render_result(AnalysisResult.model_validate(EMPTY_ANALYSIS))

        for message in ResultRenderer.EMPTY_MESSAGES.values():
            assert message in html
        assert "error-card" not in html
        assert "lab-table" not in html

    def test_single_empty_section(self):
        """Sections are independent: one empty list does not hide the others."""
        data = dict(SAMPLE_ANALYSIS, labInterpretation=[])
        html = result_renderer.render_result(AnalysisResult.model_validate(data))

        assert ResultRenderer.EMPTY_MESSAGES["labs"] in html
        assert ResultRenderer.EMPTY_MESSAGES["errors"] not in html
        assert html.count('class="drug-card"') == 1

    def test_model_text_escaped(self):
        """Model output should never be injected as markup."""
        data = dict(SAMPLE_ANALYSIS)
        data["drugInformation"] = [
            dict(SAMPLE_ANALYSIS["drugInformation"][0], drugName="<script>alert(1)</script>")
        ]
        html = result_renderer.render_result(AnalysisResult.model_validate(data))

        assert "<script>" not in html
        assert "&lt;script&gt;" in html


class TestErrorBanner:
    """Test the error fragment."""

    def test_error_banner(self):
        """The error banner should carry the message."""
        html = result_renderer.render_error("Please provide input before analyzing.")

        assert 'role="alert"' in html
        assert "Error: " in html
        assert "Please provide input before analyzing." in html
