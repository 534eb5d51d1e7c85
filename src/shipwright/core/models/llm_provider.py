from __future__ import annotations

import json
import logging
import re
import time

from shipwright.core.config.settings import LLMSettings
from shipwright.core.http.client import request_with_retry
from shipwright.core.http.errors import ShipwrightHTTPError

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class LLMUnavailable(RuntimeError):
    pass


class LLMOutputError(RuntimeError):
    pass


class ShipwrightLLM:
    """OpenAI-compatible chat completion client used by the plan and code generators."""

    def __init__(self, settings: LLMSettings) -> None:
        self.config = settings
        self.logger = logging.getLogger("shipwright.llm")

    @property
    def enabled(self) -> bool:
        return self.config.provider != "off"

    def complete_json(self, system: str, user: str, max_tokens: int | None = None) -> dict:
        raw = self._call(
            system=system,
            user=f"Return strict JSON only.\n{user}",
            max_tokens=max_tokens or self.config.max_tokens,
            temperature=0.0,
            mode="json",
        )
        parsed = parse_json_object(raw)
        if parsed is None:
            raise LLMOutputError("Could not parse JSON response")
        return parsed

    def _call(self, system: str, user: str, max_tokens: int, temperature: float, mode: str) -> str:
        if not self.enabled:
            raise LLMUnavailable("LLM provider is off")

        headers = {"Content-Type": "application/json"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        payload = {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": user},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        start = time.perf_counter()
        ok = False
        try:
            response = request_with_retry(
                "POST",
                self.config.url,
                headers=headers,
                json=payload,
                timeout_override=self.config.timeout_s,
            )
            data = response.json()
            choices = data.get("choices") or []
            message = (choices[0].get("message") or {}) if choices else {}
            content = str(message.get("content") or "")
            if not content:
                raise LLMOutputError("LLM returned an empty completion")
            ok = True
            return content
        except ShipwrightHTTPError as exc:
            raise LLMUnavailable(f"LLM request failed: {exc}") from exc
        except ValueError as exc:
            raise LLMOutputError(f"LLM response was not JSON: {exc}") from exc
        finally:
            self.logger.info(
                "llm_call",
                extra={
                    "extra_fields": {
                        "provider": self.config.provider,
                        "model": self.config.model,
                        "mode": mode,
                        "duration_ms": int((time.perf_counter() - start) * 1000),
                        "ok": ok,
                        "system_len": len(system),
                        "user_len": len(user),
                    }
                },
            )


def parse_json_object(raw: str) -> dict | None:
    """Extract the first JSON object from a completion, tolerating markdown fences."""
    cleaned = raw.strip()
    fenced = _FENCED_JSON.search(cleaned)
    if fenced:
        cleaned = fenced.group(1).strip()
    start = cleaned.find("{")
    end = cleaned.rfind("}")
    if start == -1 or end == -1 or end < start:
        return None
    try:
        parsed = json.loads(cleaned[start : end + 1])
    except json.JSONDecodeError:
        return None
    return parsed if isinstance(parsed, dict) else None
