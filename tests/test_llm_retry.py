import sys
import unittest
from pathlib import Path
from types import SimpleNamespace

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.ai.providers.openai_provider import classify_generation_error  # noqa: E402
from app.ai.retry import call_with_quota_retry, generate_json  # noqa: E402
from app.core.errors import AccessForbidden, GenerationError, QuotaExceeded  # noqa: E402
from resume_fixtures import ScriptedGenerator  # noqa: E402


class _Flaky:
    def __init__(self, failures, error_factory=QuotaExceeded):
        self.failures = failures
        self.error_factory = error_factory
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error_factory()
        return "ok"


class QuotaRetryTests(unittest.TestCase):
    def test_quota_errors_are_retried_with_backoff(self):
        func = _Flaky(failures=2)
        sleeps = []
        result = call_with_quota_retry(
            func, max_retries=2, base_delay_s=1.0, jitter_s=0.0, sleep=sleeps.append
        )
        self.assertEqual(result, "ok")
        self.assertEqual(func.calls, 3)
        self.assertEqual(sleeps, [1.0, 2.0])

    def test_jitter_is_added_on_top_of_exponential_delay(self):
        func = _Flaky(failures=3)
        sleeps = []
        call_with_quota_retry(func, max_retries=3, base_delay_s=0.5, jitter_s=1.0, sleep=sleeps.append)
        self.assertEqual(len(sleeps), 3)
        for delay, floor in zip(sleeps, [0.5, 1.0, 2.0]):
            self.assertGreaterEqual(delay, floor)
            self.assertLessEqual(delay, floor + 1.0)

    def test_quota_error_surfaces_after_retries_are_exhausted(self):
        func = _Flaky(failures=10)
        sleeps = []
        with self.assertRaises(QuotaExceeded):
            call_with_quota_retry(func, max_retries=2, base_delay_s=0.1, jitter_s=0.0, sleep=sleeps.append)
        self.assertEqual(func.calls, 3)
        self.assertEqual(len(sleeps), 2)

    def test_other_errors_are_not_retried(self):
        func = _Flaky(failures=1, error_factory=lambda: GenerationError("boom"))
        sleeps = []
        with self.assertRaises(GenerationError):
            call_with_quota_retry(func, max_retries=3, sleep=sleeps.append)
        self.assertEqual(func.calls, 1)
        self.assertEqual(sleeps, [])


class GenerateJsonTests(unittest.TestCase):
    def test_code_fences_are_stripped(self):
        payload = generate_json(ScriptedGenerator('```json\n{"title": "Engineer"}\n```'), "prompt")
        self.assertEqual(payload, {"title": "Engineer"})

    def test_bad_payloads_raise_generation_errors(self):
        cases = {"": "empty_response", "{not json": "invalid_json", '["a"]': "invalid_schema"}
        for raw, code in cases.items():
            with self.subTest(raw=raw):
                with self.assertRaises(GenerationError) as ctx:
                    generate_json(ScriptedGenerator(raw), "prompt")
                self.assertEqual(ctx.exception.code, code)


class ErrorClassificationTests(unittest.TestCase):
    def test_status_codes_and_messages_map_to_engine_errors(self):
        self.assertIsInstance(classify_generation_error(SimpleNamespace(status_code=429)), QuotaExceeded)
        self.assertIsInstance(classify_generation_error(RuntimeError("insufficient_quota")), QuotaExceeded)
        self.assertIsInstance(classify_generation_error(SimpleNamespace(status_code=403)), AccessForbidden)
        error = classify_generation_error(RuntimeError("connection reset"))
        self.assertIs(type(error), GenerationError)
        self.assertEqual(error.code, "llm_unavailable")


if __name__ == "__main__":
    unittest.main()
