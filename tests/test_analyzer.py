import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.ai.gateway import LLMGatewayError  # noqa: E402
from app.schemas.records import Job  # noqa: E402
from app.schemas.resume import ResumeProfile  # noqa: E402
from app.services.analyzer import (  # noqa: E402
    NO_COMPLIANCE_REASONING,
    analyze_application_materials,
    build_analysis_prompt,
    result_from_payload,
)
from app.services.llm_json import LLMResponseFormatError  # noqa: E402
from tests.support import RESUME_TEXT, ScriptedGateway, analysis_payload  # noqa: E402


def _job(directives=None):
    return Job(
        id="job-1",
        title="Backend Engineer",
        description="Build Python services.",
        requirements=["5+ years of Python"],
        responsibilities=["Own payment APIs"],
        private_directives=directives,
    )


class ResultFromPayloadTests(unittest.TestCase):
    def test_missing_overall_score_uses_strength_ratio(self):
        payload = analysis_payload()
        del payload["overall_match_score"]
        result = result_from_payload(payload, _job())
        self.assertEqual(result.overall_match_score, 75)
        self.assertEqual(result.resume_score, 82)

    def test_no_points_and_no_scores_is_neutral(self):
        result = result_from_payload({"remarks": "   "}, _job())
        self.assertEqual(result.overall_match_score, 50)
        self.assertEqual(result.resume_score, 50)
        self.assertEqual(result.answers_score, 50)
        self.assertEqual(result.remarks, "Analysis completed")

    def test_fallback_score_respects_signature_ceiling(self):
        payload = analysis_payload(overall_weaknesses=["Resume is corrupted and unreadable"])
        del payload["overall_match_score"]
        result = result_from_payload(payload, _job())
        self.assertEqual(result.overall_match_score, 40)

    def test_scores_are_coerced_and_clamped(self):
        payload = analysis_payload(resume_score="85%", answers_score=140, overall_match_score=-3)
        result = result_from_payload(payload, _job())
        self.assertEqual(result.resume_score, 85)
        self.assertEqual(result.answers_score, 100)
        self.assertEqual(result.overall_match_score, 0)

    def test_non_string_points_are_dropped(self):
        payload = analysis_payload(overall_strengths=["Good", 3, None, "  "], resume_weaknesses="not a list")
        result = result_from_payload(payload, _job())
        self.assertEqual(result.overall_strengths, ["Good"])
        self.assertEqual(result.resume_weaknesses, [])

    def test_compliance_only_with_directives(self):
        payload = analysis_payload(compliance={"meets_requirements": True, "compliance_score": 90})
        self.assertIsNone(result_from_payload(payload, _job()).compliance)
        self.assertIsNone(result_from_payload(payload, _job("   ")).compliance)

    def test_missing_compliance_defaults(self):
        result = result_from_payload(analysis_payload(), _job("US citizens only"))
        self.assertFalse(result.compliance.meets_requirements)
        self.assertEqual(result.compliance.compliance_score, 50)
        self.assertEqual(result.compliance.reasoning, NO_COMPLIANCE_REASONING)

    def test_compliance_meets_threshold_when_flag_missing(self):
        payload = analysis_payload(compliance={"compliance_score": 82, "reasoning": "Citizen"})
        result = result_from_payload(payload, _job("US citizens only"))
        self.assertTrue(result.compliance.meets_requirements)
        self.assertEqual(result.compliance.compliance_score, 82)


class AnalysisPromptTests(unittest.TestCase):
    def test_directives_section_and_compliance_shape(self):
        profile = ResumeProfile(raw_text=RESUME_TEXT)
        with_directives = build_analysis_prompt(profile, "", _job("US citizens only"), company_name="Globex")
        without = build_analysis_prompt(profile, "", _job(), company_name="Globex")

        self.assertIn("PRIVATE DIRECTIVES", with_directives)
        self.assertIn("US citizens only", with_directives)
        self.assertIn('"compliance_score"', with_directives)
        self.assertNotIn("PRIVATE DIRECTIVES", without)
        self.assertNotIn('"compliance_score"', without)
        self.assertIn("HIRING ORGANIZATION: Globex", without)

    def test_zero_usable_note_only_for_empty_profile(self):
        empty = build_analysis_prompt(ResumeProfile(raw_text="  "), "Cover letter", _job())
        sparse = build_analysis_prompt(ResumeProfile(raw_text="", skills=["Go"]), "Cover letter", _job())

        self.assertIn("ZERO usable information", empty)
        self.assertNotIn("ZERO usable information", sparse)
        self.assertIn("SKILLS: Go", sparse)

    def test_missing_materials_placeholder(self):
        prompt = build_analysis_prompt(ResumeProfile(raw_text=RESUME_TEXT), "", _job())
        self.assertIn("No cover letter, answers or other materials provided.", prompt)


class AnalyzeApplicationTests(unittest.TestCase):
    def test_calls_gateway_and_records_model(self):
        gateway = ScriptedGateway(["Here you go:\n" + '{"overall_match_score": 71, "remarks": "Fine"}'])
        result = analyze_application_materials(
            ResumeProfile(raw_text=RESUME_TEXT), "answers", _job(), gateway=gateway
        )

        self.assertEqual(result.overall_match_score, 71)
        self.assertEqual(result.model_used, "claude-test")
        self.assertEqual(result.provider_used, "anthropic")
        self.assertEqual(gateway.calls[0]["temperature"], 0.3)
        self.assertEqual(gateway.calls[0]["purpose"], "application_analysis")

    def test_non_object_output_is_rejected(self):
        gateway = ScriptedGateway(["[1, 2, 3]"])
        with self.assertRaises(LLMResponseFormatError):
            analyze_application_materials(ResumeProfile(raw_text=RESUME_TEXT), "", _job(), gateway=gateway)

    def test_gateway_failure_propagates(self):
        gateway = ScriptedGateway([LLMGatewayError("all providers failed")])
        with self.assertRaises(LLMGatewayError):
            analyze_application_materials(ResumeProfile(raw_text=RESUME_TEXT), "", _job(), gateway=gateway)


if __name__ == "__main__":
    unittest.main()
