import sys
import unittest
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.services.signatures import Signature, detect_signatures  # noqa: E402

CITIZENS_ONLY = "US citizens only. We do not offer visa sponsorship."


class SignatureDetectionTests(unittest.TestCase):
    def test_corruption_and_experience_gap(self):
        found = detect_signatures(
            "Resume is corrupted and unreadable. Appears to be a student, lacking the required 5 years",
            "",
            None,
        )
        self.assertEqual(found, frozenset({Signature.CORRUPTED_RESUME, Signature.EXPERIENCE_GAP}))

    def test_wrong_organization_from_remarks(self):
        found = detect_signatures("", "The cover letter is addressed to a different company.", None)
        self.assertEqual(found, frozenset({Signature.WRONG_ORGANIZATION}))

    def test_negated_language_does_not_fire(self):
        found = detect_signatures(
            "The resume is not corrupted, just sparse.",
            "Candidate does not lack the required experience.",
            None,
        )
        self.assertEqual(found, frozenset())

    def test_clean_text_has_no_signatures(self):
        found = detect_signatures("Limited Kubernetes exposure", "Strong backend engineer.", CITIZENS_ONLY)
        self.assertEqual(found, frozenset())

    def test_citizenship_conflict_requires_both_sides(self):
        needs = "Candidate requires visa sponsorship to work in the US."
        self.assertIn(Signature.CITIZENSHIP_CONFLICT, detect_signatures(needs, "", CITIZENS_ONLY))
        self.assertNotIn(Signature.CITIZENSHIP_CONFLICT, detect_signatures(needs, "", None))
        self.assertNotIn(Signature.CITIZENSHIP_CONFLICT, detect_signatures(needs, "", "Prefer fintech background."))
        self.assertNotIn(Signature.CITIZENSHIP_CONFLICT, detect_signatures("Strong Python", "", CITIZENS_ONLY))

    def test_sponsorship_negation_does_not_fire(self):
        found = detect_signatures("", "Candidate does not require sponsorship.", CITIZENS_ONLY)
        self.assertNotIn(Signature.CITIZENSHIP_CONFLICT, found)
        found = detect_signatures("", "Candidate doesn't need visa sponsorship.", CITIZENS_ONLY)
        self.assertNotIn(Signature.CITIZENSHIP_CONFLICT, found)

    def test_negation_covers_the_whole_clause(self):
        found = detect_signatures("The resume is not corrupted or unreadable, just sparse.", "", None)
        self.assertEqual(found, frozenset())
        found = detect_signatures("The resume is not corrupted, but it is unreadable in places.", "", None)
        self.assertEqual(found, frozenset({Signature.CORRUPTED_RESUME}))

    def test_experience_gap_phrasings(self):
        gaps = [
            "Does not have the required 5 years of experience",
            "Only 2 years of experience versus the 5 years required",
            "Does not meet the 5-year experience requirement",
            "Falls short of the required years of experience",
            "Insufficient professional experience for a senior role",
            "No evidence of the required leadership experience",
        ]
        for text in gaps:
            with self.subTest(text=text):
                self.assertEqual(detect_signatures(text, "", None), frozenset({Signature.EXPERIENCE_GAP}))

    def test_experience_gap_false_positives(self):
        clean = [
            "Lacks the required AWS certification, though has 6 years of backend experience",
            "Lacks the required security clearance. Has 8 years of experience.",
            "Exceeds the 5 years of experience required",
            "Meets the 5-year experience requirement",
            "Candidate is not lacking the required experience",
        ]
        for text in clean:
            with self.subTest(text=text):
                self.assertEqual(detect_signatures(text, "", None), frozenset())

    def test_citizenship_directive_phrasings(self):
        needs = "Candidate requires visa sponsorship."
        for directives in (
            "Only US citizens may apply.",
            "Requires U.S. citizenship.",
            "Citizenship is mandatory for this role.",
            "US citizens required.",
            "Must hold US citizenship.",
        ):
            with self.subTest(directives=directives):
                self.assertIn(Signature.CITIZENSHIP_CONFLICT, detect_signatures(needs, "", directives))
        self.assertNotIn(
            Signature.CITIZENSHIP_CONFLICT,
            detect_signatures(needs, "", "We do not require citizenship for this role."),
        )

    def test_candidate_not_a_citizen(self):
        found = detect_signatures("", "Candidate is not a U.S. citizen.", "Only US citizens may apply.")
        self.assertEqual(found, frozenset({Signature.CITIZENSHIP_CONFLICT}))

    def test_case_insensitive(self):
        found = detect_signatures("WRONG COMPANY NAME IN COVER LETTER", "", None)
        self.assertEqual(found, frozenset({Signature.WRONG_ORGANIZATION}))


if __name__ == "__main__":
    unittest.main()
