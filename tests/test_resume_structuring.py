import json
import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.ai.gateway import LLMGatewayError  # noqa: E402
from app.services.resume_structuring import MAX_RESUME_CHARS, structure_resume  # noqa: E402
from tests.support import RESUME_TEXT, ScriptedGateway, structuring_payload  # noqa: E402


class ResumeStructuringTests(unittest.TestCase):
    def test_empty_input_never_calls_gateway(self):
        gateway = ScriptedGateway()
        for text in ("", "   \n\t"):
            profile = structure_resume(text, use_llm=True, gateway=gateway)
            self.assertEqual(profile.raw_text, text)
            self.assertEqual(profile.skills, [])
            self.assertIsNone(profile.name)
        self.assertEqual(gateway.calls, [])

    def test_llm_disabled_returns_raw_text_only(self):
        gateway = ScriptedGateway([structuring_payload()])
        profile = structure_resume(RESUME_TEXT, use_llm=False, gateway=gateway)
        self.assertEqual(profile.raw_text, RESUME_TEXT)
        self.assertEqual(profile.experience, [])
        self.assertEqual(gateway.calls, [])

    def test_structured_fields_and_low_temperature(self):
        gateway = ScriptedGateway(["```json\n" + json.dumps(structuring_payload()) + "\n```"])
        profile = structure_resume(RESUME_TEXT, use_llm=True, gateway=gateway)

        self.assertEqual(profile.name, "Ada Example")
        self.assertEqual(profile.skills, ["Python", "PostgreSQL"])
        self.assertEqual(profile.experience[0].organization, "Acme")
        self.assertEqual(profile.education[0].credential, "BSc Computer Science")
        self.assertEqual(profile.raw_text, RESUME_TEXT)
        self.assertEqual(gateway.calls[0]["temperature"], 0.1)

    def test_bad_fields_default_independently(self):
        payload = structuring_payload(
            skills="Python, SQL",
            experience=[{"title": "Engineer", "company": "Initech"}, "junk", None],
            education={"degree": "not a list"},
            personal_info={"phone": "+1 555 0100"},
        )
        gateway = ScriptedGateway([payload])
        profile = structure_resume(RESUME_TEXT, use_llm=True, gateway=gateway)

        self.assertEqual(profile.skills, [])
        self.assertEqual(len(profile.experience), 1)
        self.assertEqual(profile.experience[0].organization, "Initech")
        self.assertEqual(profile.education, [])
        self.assertEqual(profile.phone, "+1 555 0100")
        self.assertEqual(profile.name, "Ada Example")

    def test_gateway_failure_falls_back_to_raw_text(self):
        gateway = ScriptedGateway([LLMGatewayError("all providers failed")])
        profile = structure_resume(RESUME_TEXT, use_llm=True, gateway=gateway)
        self.assertEqual(profile.raw_text, RESUME_TEXT)
        self.assertEqual(profile.skills, [])

    def test_non_object_output_falls_back_to_raw_text(self):
        gateway = ScriptedGateway(['["Python", "SQL"]'])
        profile = structure_resume(RESUME_TEXT, use_llm=True, gateway=gateway)
        self.assertEqual(profile.raw_text, RESUME_TEXT)
        self.assertEqual(profile.skills, [])

    def test_long_resume_is_truncated_in_prompt(self):
        gateway = ScriptedGateway([structuring_payload()])
        long_text = "x" * (MAX_RESUME_CHARS + 500)
        profile = structure_resume(long_text, use_llm=True, gateway=gateway)

        self.assertIn("... (truncated)", gateway.calls[0]["prompt"])
        self.assertNotIn("x" * (MAX_RESUME_CHARS + 1), gateway.calls[0]["prompt"])
        self.assertEqual(profile.raw_text, long_text)


if __name__ == "__main__":
    unittest.main()
