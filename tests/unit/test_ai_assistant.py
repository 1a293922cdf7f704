"""Unit tests for the AI assistant and its local fallback."""

from unittest.mock import MagicMock

import pytest
import requests

from rig.ai_assistant import AIAssistant, resolve_ai_provider


class TestResolveProvider:
    def test_default_is_local(self):
        assert resolve_ai_provider() == "local"

    def test_rig_variable_wins(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "openai")
        monkeypatch.setenv("RIG_AI_PROVIDER", "ollama")
        assert resolve_ai_provider() == "ollama"

    def test_generic_variable(self, monkeypatch):
        monkeypatch.setenv("AI_PROVIDER", "Anthropic")
        assert resolve_ai_provider() == "anthropic"

    def test_unknown_backend_falls_back_to_local(self):
        assert resolve_ai_provider("gemini") == "local"


class TestCategorizeIssue:
    @pytest.mark.parametrize(
        ("issue", "category"),
        [
            ("Connection refused on port 5432", "connection"),
            ("API latency is very slow", "performance"),
            ("The deploy pipeline fails", "deployment"),
            ("Permission denied when reading bucket", "security"),
            ("something odd", "connection"),
        ],
    )
    def test_keywords(self, issue, category):
        assert AIAssistant.categorize_issue(issue) == category


class TestLocalBackend:
    def test_local_recommendation_structure(self):
        advice = AIAssistant(provider="local").get_recommendation("the site is slow")
        assert advice.startswith("**Performance Issues**")
        assert "this appears to be a performance issue" in advice
        assert "**Resolution Steps:**" in advice
        assert "**Prevention Measures:**" in advice

    def test_local_is_always_healthy(self):
        assert AIAssistant(provider="local").check_health() is True

    def test_template_scripts(self):
        assistant = AIAssistant(provider="local")
        assert assistant.generate_script("backup-database", "gcp", "bash").startswith("#!/bin/bash")
        assert "python3" in assistant.generate_script("backup-database", "aws", "python")

    def test_generic_script_for_unknown_task(self):
        script = AIAssistant(provider="local").generate_script("rotate-logs", None, "bash")
        assert "Executing task: rotate-logs" in script


class TestRemoteBackends:
    def test_anthropic_answer(self):
        client = MagicMock()
        client.messages.create.return_value = MagicMock(content=[MagicMock(text="Restart it.")])
        assistant = AIAssistant(provider="anthropic", anthropic_client=client)

        answer = assistant.get_recommendation("db down", {"provider": "gcp"})

        assert answer == "Restart it."
        prompt = client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert "Cloud Provider: gcp" in prompt

    def test_anthropic_without_key_falls_back(self):
        advice = AIAssistant(provider="anthropic").get_recommendation("connection timeout")
        assert "**Connection Issues**" in advice

    def test_anthropic_empty_answer_falls_back(self):
        client = MagicMock()
        client.messages.create.return_value = MagicMock(content=[])
        advice = AIAssistant(provider="anthropic", anthropic_client=client).get_recommendation(
            "deploy broken"
        )
        assert "**Deployment Issues**" in advice

    def test_openai_answer(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        http = MagicMock()
        http.post.return_value.json.return_value = {
            "choices": [{"message": {"content": "Check the firewall."}}]
        }
        assistant = AIAssistant(provider="openai", http=http)

        assert assistant.get_recommendation("timeout") == "Check the firewall."
        headers = http.post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer sk-test"

    def test_openai_null_content_falls_back(self, monkeypatch):
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        http = MagicMock()
        http.post.return_value.json.return_value = {"choices": [{"message": {"content": None}}]}

        advice = AIAssistant(provider="openai", http=http).get_recommendation("site is slow")

        assert isinstance(advice, str)
        assert "**Performance Issues**" in advice

    def test_ollama_null_response_falls_back(self):
        http = MagicMock()
        http.post.return_value.json.return_value = {"response": None}
        assistant = AIAssistant(provider="ollama", http=http)

        assert "**Connection Issues**" in assistant.get_recommendation("timeout")
        assert assistant.generate_script("health-check").startswith("#!/bin/bash")

    def test_ollama_connection_error_falls_back(self):
        http = MagicMock()
        http.post.side_effect = requests.ConnectionError("refused")
        advice = AIAssistant(provider="ollama", http=http).get_recommendation("access denied")
        assert "**Security Issues**" in advice

    def test_ollama_script_strips_fences(self):
        http = MagicMock()
        http.post.return_value.json.return_value = {"response": "```bash\necho hi\n```"}
        script = AIAssistant(provider="ollama", http=http).generate_script("say hi")
        assert script == "echo hi\n"

    def test_ollama_health_probe(self):
        http = MagicMock()
        http.get.return_value.status_code = 200
        assert AIAssistant(provider="ollama", http=http).check_health() is True
        http.get.side_effect = requests.Timeout()
        assert AIAssistant(provider="ollama", http=http).check_health() is False

    def test_key_based_health(self, monkeypatch):
        assert AIAssistant(provider="openai").check_health() is False
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert AIAssistant(provider="openai").check_health() is True
