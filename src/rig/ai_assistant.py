"""AI assistant for troubleshooting advice and script generation.

The backend is chosen with RIG_AI_PROVIDER (or AI_PROVIDER):

- anthropic: Claude through the anthropic SDK (ANTHROPIC_API_KEY)
- openai: chat completions over HTTPS (OPENAI_API_KEY)
- ollama: a local Ollama server (OLLAMA_HOST, OLLAMA_MODEL)
- local: keyword-based advice and built-in script templates (default)

Remote backends are best effort. Any failure is logged and the answer comes
from the local backend instead, so callers never see an exception.
"""

import logging
import os
from typing import Any

import anthropic  # type: ignore[import-untyped]
import requests

from rig.exceptions import RigError
from rig.log_sanitizer import LogSanitizer
from rig.retry_config import get_retry_config

logger = logging.getLogger(__name__)

AI_PROVIDERS = ("anthropic", "openai", "ollama", "local")

ANTHROPIC_MODEL = "claude-sonnet-4-5-20250929"
OPENAI_MODEL = "gpt-4o"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"
OLLAMA_HOST = "http://localhost:11434"
OLLAMA_MODEL = "llama3"
OLLAMA_HEALTH_TIMEOUT = 5

MAX_TOKENS = 1024

SYSTEM_PROMPT = "You are a DevOps expert assistant."

DEFAULT_CATEGORY = "connection"

CATEGORY_KEYWORDS: dict[str, tuple[str, ...]] = {
    "connection": ("timeout", "connection", "refused", "unreachable", "network"),
    "performance": ("slow", "performance", "latency", "cpu", "memory", "load"),
    "deployment": ("deploy", "build", "ci/cd", "pipeline", "release"),
    "security": ("permission", "denied", "unauthorized", "security", "access"),
}

RECOMMENDATIONS: dict[str, dict[str, Any]] = {
    "connection": {
        "title": "Connection Issues",
        "steps": [
            "Check network connectivity",
            "Verify security groups and firewall rules",
            "Check service health status",
            "Verify credentials and permissions",
            "Review recent configuration changes",
        ],
        "prevention": [
            "Implement monitoring and alerting",
            "Use connection pooling",
            "Set up retry mechanisms",
            "Maintain updated documentation",
        ],
    },
    "performance": {
        "title": "Performance Issues",
        "steps": [
            "Analyze resource utilization (CPU, Memory, I/O)",
            "Check for bottlenecks in the system",
            "Review application logs for slow queries",
            "Verify auto-scaling configurations",
            "Consider caching strategies",
        ],
        "prevention": [
            "Set up performance monitoring",
            "Implement load testing",
            "Use CDN for static content",
            "Optimize database queries",
        ],
    },
    "deployment": {
        "title": "Deployment Issues",
        "steps": [
            "Verify deployment configuration",
            "Check dependency versions",
            "Review deployment logs",
            "Validate environment variables",
            "Test rollback procedures",
        ],
        "prevention": [
            "Use CI/CD pipelines",
            "Implement blue-green deployments",
            "Maintain staging environments",
            "Use infrastructure as code",
        ],
    },
    "security": {
        "title": "Security Issues",
        "steps": [
            "Review security group configurations",
            "Check IAM roles and permissions",
            "Scan for vulnerabilities",
            "Review access logs",
            "Verify encryption settings",
        ],
        "prevention": [
            "Regular security audits",
            "Implement least privilege principle",
            "Use secrets management tools",
            "Enable logging and monitoring",
        ],
    },
}

SCRIPT_TEMPLATES: dict[str, dict[str, str]] = {
    "backup-database": {
        "bash": """#!/bin/bash
# Database backup
set -euo pipefail

TIMESTAMP=$(date +%Y%m%d_%H%M%S)
DB_NAME="${1:?usage: $0 <database>}"
BACKUP_DIR="${BACKUP_DIR:-/backups}"

echo "Starting backup of $DB_NAME..."
mysqldump -u root -p "$DB_NAME" > "$BACKUP_DIR/${DB_NAME}_${TIMESTAMP}.sql"
gzip "$BACKUP_DIR/${DB_NAME}_${TIMESTAMP}.sql"
echo "Backup completed: ${DB_NAME}_${TIMESTAMP}.sql.gz"
""",
        "python": """#!/usr/bin/env python3
# Database backup
import datetime
import subprocess
import sys

db_name = sys.argv[1] if len(sys.argv) > 1 else "database"
timestamp = datetime.datetime.now().strftime("%Y%m%d_%H%M%S")
backup_file = f"/backups/{db_name}_{timestamp}.sql"

print(f"Starting backup of {db_name}...")
with open(backup_file, "w") as out:
    subprocess.run(["mysqldump", "-u", "root", "-p", db_name], stdout=out, check=True)
subprocess.run(["gzip", backup_file], check=True)
print(f"Backup completed: {backup_file}.gz")
""",
    },
    "health-check": {
        "bash": """#!/bin/bash
# Service health check
SERVICES=("nginx" "mysql" "redis")

for service in "${SERVICES[@]}"; do
  if systemctl is-active --quiet "$service"; then
    echo "OK   $service is running"
  else
    echo "FAIL $service is not running"
    systemctl start "$service"
  fi
done
""",
        "python": """#!/usr/bin/env python3
# Service health check
import subprocess

services = ["nginx", "mysql", "redis"]

for service in services:
    result = subprocess.run(["systemctl", "is-active", service], capture_output=True, text=True)
    if result.returncode == 0:
        print(f"OK   {service} is running")
    else:
        print(f"FAIL {service} is not running")
        subprocess.run(["systemctl", "start", service])
""",
    },
}


class AIBackendError(RigError):
    """A remote AI backend could not produce an answer."""

    pass


def resolve_ai_provider(explicit: str | None = None) -> str:
    """Backend name from the argument, RIG_AI_PROVIDER, AI_PROVIDER or "local"."""
    name = (explicit or os.getenv("RIG_AI_PROVIDER") or os.getenv("AI_PROVIDER") or "local")
    name = name.strip().lower()
    if name not in AI_PROVIDERS:
        logger.warning(f"Unknown AI provider '{name}', using local recommendations")
        return "local"
    return name


class AIAssistant:
    """Troubleshooting and script generation backed by a configurable AI.

    Args:
        provider: Backend name (default: from the environment, else local)
        anthropic_client: Pre-built anthropic client (created lazily otherwise)
        http: Object with requests-style get/post (default: a requests.Session)
    """

    def __init__(
        self,
        provider: str | None = None,
        anthropic_client: Any = None,
        http: Any = None,
    ):
        self.provider = resolve_ai_provider(provider)
        self._anthropic_client = anthropic_client
        self._http = http or requests.Session()
        self.timeout = get_retry_config().ai_request_timeout
        self.ollama_host = os.getenv("OLLAMA_HOST", OLLAMA_HOST).rstrip("/")
        self.ollama_model = os.getenv("OLLAMA_MODEL", OLLAMA_MODEL)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_recommendation(self, issue: str, context: dict[str, Any] | None = None) -> str:
        """Advice for an issue. Never raises."""
        context = context or {}
        if self.provider != "local":
            try:
                return self._complete(self._build_prompt(issue, context))
            except (AIBackendError, anthropic.APIError, requests.RequestException) as e:
                logger.error(f"AI assistant error: {LogSanitizer.sanitize(e)}")
        return self.local_recommendation(issue)

    def check_health(self) -> bool:
        """Whether the configured backend looks usable. Never raises."""
        if self.provider == "anthropic":
            return bool(os.getenv("ANTHROPIC_API_KEY")) or self._anthropic_client is not None
        if self.provider == "openai":
            return bool(os.getenv("OPENAI_API_KEY"))
        if self.provider == "ollama":
            try:
                response = self._http.get(
                    f"{self.ollama_host}/api/tags", timeout=OLLAMA_HEALTH_TIMEOUT
                )
                return response.status_code == 200
            except requests.RequestException as e:
                logger.debug(f"Ollama health check failed: {LogSanitizer.sanitize(e)}")
                return False
        return True

    def generate_script(self, task: str, provider: str | None = None, language: str = "bash") -> str:
        """Script for a task, from the AI backend or the built-in templates."""
        language = (language or "bash").lower()
        if self.provider != "local":
            prompt = (
                f"Write a {language} script for this task: {task}.\n"
                f"Target cloud provider: {provider or 'any'}.\n"
                "Return only the script, without explanations or markdown fences."
            )
            try:
                return self._strip_fences(self._complete(prompt))
            except (AIBackendError, anthropic.APIError, requests.RequestException) as e:
                logger.error(f"AI script generation failed: {LogSanitizer.sanitize(e)}")
        return self.template_script(task, language)

    @staticmethod
    def categorize_issue(issue: str) -> str:
        issue_lower = (issue or "").lower()
        for category, words in CATEGORY_KEYWORDS.items():
            if any(word in issue_lower for word in words):
                return category
        return DEFAULT_CATEGORY

    # ------------------------------------------------------------------
    # Local backend
    # ------------------------------------------------------------------

    def local_recommendation(self, issue: str) -> str:
        category = self.categorize_issue(issue)
        recommendation = RECOMMENDATIONS[category]

        lines = [
            f"**{recommendation['title']}**",
            "",
            f"Based on the issue description, this appears to be a {category} issue.",
            "",
            "**Resolution Steps:**",
        ]
        lines.extend(f"{i}. {step}" for i, step in enumerate(recommendation["steps"], 1))
        lines.extend(["", "**Prevention Measures:**"])
        lines.extend(f"- {measure}" for measure in recommendation["prevention"])
        lines.extend(
            [
                "",
                "**Additional Resources:**",
                "- Check cloud provider documentation",
                "- Review system logs",
                "- Consult team runbooks",
            ]
        )
        return "\n".join(lines) + "\n"

    @staticmethod
    def template_script(task: str, language: str = "bash") -> str:
        template = SCRIPT_TEMPLATES.get(task, {}).get(language)
        if template:
            return template
        if language == "python":
            return (
                "#!/usr/bin/env python3\n"
                f"# Generated script for: {task}\n"
                f'print("Executing task: {task}")\n'
                "# Add your implementation here\n"
            )
        return (
            "#!/bin/bash\n"
            f"# Generated script for: {task}\n"
            f'echo "Executing task: {task}"\n'
            "# Add your implementation here\n"
        )

    # ------------------------------------------------------------------
    # Remote backends
    # ------------------------------------------------------------------

    @staticmethod
    def _build_prompt(issue: str, context: dict[str, Any]) -> str:
        return (
            "As a DevOps expert, analyze the following issue and provide recommendations.\n\n"
            f"Issue: {issue}\n\n"
            "Context:\n"
            f"- Cloud Provider: {context.get('provider') or 'Not specified'}\n"
            f"- Resource Type: {context.get('resource_type') or 'Not specified'}\n"
            f"- Environment: {context.get('environment') or 'Not specified'}\n"
            f"- Recent Errors: {context.get('errors') or []}\n\n"
            "Please provide:\n"
            "1. Root cause analysis\n"
            "2. Step-by-step solution\n"
            "3. Prevention measures\n"
            "4. Best practices\n"
        )

    def _complete(self, prompt: str) -> str:
        if self.provider == "anthropic":
            return self._call_anthropic(prompt)
        if self.provider == "openai":
            return self._call_openai(prompt)
        return self._call_ollama(prompt)

    def _call_anthropic(self, prompt: str) -> str:
        if self._anthropic_client is None:
            api_key = os.getenv("ANTHROPIC_API_KEY")
            if not api_key:
                raise AIBackendError("ANTHROPIC_API_KEY is not set")
            self._anthropic_client = anthropic.Anthropic(api_key=api_key, timeout=self.timeout)

        message = self._anthropic_client.messages.create(
            model=os.getenv("RIG_ANTHROPIC_MODEL", ANTHROPIC_MODEL),
            max_tokens=MAX_TOKENS,
            system=SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}],
        )
        text = "".join(getattr(block, "text", None) or "" for block in message.content or [])
        if not text.strip():
            raise AIBackendError("Empty response from Claude")
        return text

    def _call_openai(self, prompt: str) -> str:
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise AIBackendError("OPENAI_API_KEY is not set")

        response = self._http.post(
            OPENAI_URL,
            headers={"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"},
            json={
                "model": os.getenv("OPENAI_MODEL", OPENAI_MODEL),
                "messages": [
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        try:
            text = response.json()["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise AIBackendError(f"Unexpected OpenAI response: {e}") from e
        if not isinstance(text, str) or not text.strip():
            raise AIBackendError("Empty response from OpenAI")
        return text

    def _call_ollama(self, prompt: str) -> str:
        response = self._http.post(
            f"{self.ollama_host}/api/generate",
            json={
                "model": self.ollama_model,
                "system": SYSTEM_PROMPT,
                "prompt": prompt,
                "stream": False,
            },
            timeout=self.timeout,
        )
        response.raise_for_status()
        try:
            text = response.json()["response"]
        except (KeyError, TypeError, ValueError) as e:
            raise AIBackendError(f"Unexpected Ollama response: {e}") from e
        if not isinstance(text, str) or not text.strip():
            raise AIBackendError("Empty response from Ollama")
        return text

    @staticmethod
    def _strip_fences(text: str) -> str:
        lines = text.strip().splitlines()
        if lines and lines[0].startswith("```"):
            lines = lines[1:]
        if lines and lines[-1].startswith("```"):
            lines = lines[:-1]
        return "\n".join(lines) + "\n"


__all__ = ["AIAssistant", "AIBackendError", "resolve_ai_provider"]
