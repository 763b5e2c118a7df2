import os
import sys
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.ai.config import ANTHROPIC_FALLBACK_MODELS, load_llm_config, model_chain  # noqa: E402
from app.ai.factory import build_providers  # noqa: E402
from app.ai.gateway import LLMGateway  # noqa: E402
from app.ai.providers.claude_provider import ClaudeProvider  # noqa: E402
from app.ai.providers.openai_provider import OpenAIProvider  # noqa: E402
from tests.support import make_config  # noqa: E402


class ProviderAdapterTests(unittest.TestCase):
    def test_openai_provider_returns_message_content(self):
        client = MagicMock()
        client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content='{"ok": true}'))]
        )
        provider = OpenAIProvider(api_key="sk-test", client=client)

        text = provider.complete(model="gpt-4o", prompt="hi", temperature=0.2, max_output_tokens=50)

        self.assertEqual(text, '{"ok": true}')
        kwargs = client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o")
        self.assertEqual(kwargs["max_tokens"], 50)
        self.assertEqual(kwargs["messages"], [{"role": "user", "content": "hi"}])

    def test_claude_provider_joins_text_blocks(self):
        client = MagicMock()
        client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="part one "),
                SimpleNamespace(type="tool_use", text="ignored"),
                SimpleNamespace(type="text", text="part two"),
            ]
        )
        provider = ClaudeProvider(api_key="sk-ant", client=client)

        text = provider.complete(model="claude-x", prompt="hi", temperature=0.1, max_output_tokens=10)

        self.assertEqual(text, "part one part two")

    def test_model_unavailable_detection(self):
        provider = ClaudeProvider(api_key="sk-ant", client=MagicMock())
        self.assertTrue(provider.is_model_unavailable(SimpleNamespace(status_code=404)))
        self.assertTrue(provider.is_model_unavailable(Exception("not_found_error: model: claude-old")))
        self.assertFalse(provider.is_model_unavailable(Exception("overloaded_error")))

        openai_provider = OpenAIProvider(api_key="sk-test", client=MagicMock())
        self.assertTrue(openai_provider.is_model_unavailable(Exception("The model `gpt-x` does not exist")))
        self.assertFalse(openai_provider.is_model_unavailable(Exception("Rate limit reached")))

    def test_rate_limit_naming_a_model_is_not_unavailable(self):
        provider = ClaudeProvider(api_key="sk-ant", client=MagicMock())
        rate_limited = Exception(
            "Error code: 429 - {'type': 'error', 'error': {'type': 'rate_limit_error', "
            "'message': 'Number of request tokens has exceeded your rate limit (model: claude-a)'}}"
        )
        self.assertFalse(provider.is_model_unavailable(rate_limited))
        self.assertFalse(provider.is_model_unavailable(SimpleNamespace(status_code=429)))

        openai_provider = OpenAIProvider(api_key="sk-test", client=MagicMock())
        self.assertFalse(openai_provider.is_model_unavailable(Exception("Organization not found in request headers")))
        self.assertTrue(openai_provider.is_model_unavailable(Exception("Error code: 404 - model_not_found")))

    def test_rate_limit_on_primary_model_abandons_provider(self):
        claude_client = MagicMock()
        claude_client.messages.create.side_effect = Exception(
            "Error code: 429 - rate_limit_error (model: claude-a)"
        )
        openai_client = MagicMock()
        openai_client.chat.completions.create.return_value = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content="from openai"))]
        )
        gateway = LLMGateway(
            make_config(),
            {
                "anthropic": ClaudeProvider(api_key="sk-ant", client=claude_client),
                "openai": OpenAIProvider(api_key="sk-test", client=openai_client),
            },
            audit_hook=None,
        )

        response = gateway.call("prompt")

        self.assertEqual(response.provider_used, "openai")
        self.assertEqual(response.model_used, "gpt-a")
        self.assertEqual(claude_client.messages.create.call_count, 1)
        self.assertEqual(claude_client.messages.create.call_args.kwargs["model"], "claude-a")

    def test_missing_key_is_rejected(self):
        with self.assertRaises(RuntimeError):
            OpenAIProvider(api_key="  ")
        with self.assertRaises(RuntimeError):
            ClaudeProvider(api_key="")


class LLMConfigTests(unittest.TestCase):
    def test_model_chain_puts_primary_first_without_duplicates(self):
        chain = model_chain("gpt-4o-mini", ("gpt-4o", "gpt-4o-mini", ""))
        self.assertEqual(chain, ("gpt-4o-mini", "gpt-4o"))

    def test_load_from_environment(self):
        env = {
            "ANTHROPIC_API_KEY": "sk-ant-real",
            "ANTHROPIC_MODEL": "claude-custom",
            "OPENAI_API_KEY": "",
            "LLM_TIMEOUT_S": "15",
        }
        with patch.dict(os.environ, env, clear=False):
            config = load_llm_config()

        self.assertEqual(config.anthropic.models[0], "claude-custom")
        self.assertEqual(config.anthropic.models[1:], ANTHROPIC_FALLBACK_MODELS)
        self.assertEqual(config.configured_providers(), ("anthropic",))
        self.assertEqual(config.timeout_s, 15.0)

    def test_build_providers_only_for_configured_credentials(self):
        config = make_config(openai_key=None)
        with patch("app.ai.providers.claude_provider.Anthropic") as anthropic_cls:
            providers = build_providers(config)

        self.assertEqual(list(providers), ["anthropic"])
        anthropic_cls.assert_called_once()
        self.assertEqual(anthropic_cls.call_args.kwargs["api_key"], "sk-ant-test")


if __name__ == "__main__":
    unittest.main()
