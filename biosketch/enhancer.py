"""
Optional LLM text enhancement over an OpenAI-compatible (LiteLLM) endpoint.

Three operations, all safe to call when no endpoint is configured:
- enhance_headings(text)      -> text with heading lines tidied (identity when off)
- enhance_citations(blocks)   -> citation blocks tidied one-for-one (identity when off)
- extract_structured_data(text) -> header/honors/contributions payload or None

Model output is only accepted after guard checks (non-empty, length close to the
input, same number of citation blocks). A rejected or failed call degrades to the
input unchanged and emits a RuntimeWarning; nothing here raises on network errors.

Env:
    LITELLM_BASE_URL, LITELLM_API_KEY, LITELLM_MODEL   all three enable the client
    LITELLM_CONNECT_TIMEOUT_S (3), LITELLM_READ_TIMEOUT_S (60)
    LITELLM_RETRIES (1), LITELLM_RETRY_BACKOFF_S (0.5)
    LITELLM_DEBUG_LOG   append request/response transcripts to this file
"""
from __future__ import annotations

import json
import os
import re
import time
import warnings
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import requests

PROMPT_PATH = Path(__file__).resolve().parent / "config" / "llm-system-prompt.md"
LENGTH_TOLERANCE = 0.25

HEADING_PROMPT = (
    "You tidy section headings in the plain text of an NIH biographical sketch. "
    "Put every section heading on its own line and fix broken or doubled heading words. "
    "Do not change, add, remove or reorder any other text. Return only the revised text."
)

CITATION_PROMPT = (
    "You tidy citations. The input is a JSON array of citation strings. Join words split "
    "across lines, fix spacing around punctuation and keep every author, year, title, journal, "
    "DOI and PMID exactly as written. Return only a JSON array with the same number of strings, "
    "in the same order."
)


# -------------------------- Protocols --------------------------
@dataclass
class Message:
    role: str  # "system" | "user" | "assistant"
    content: str


class LLMClient:
    """Abstract client. Implement complete() for your provider; return None on failure."""

    def complete(
        self,
        messages: List[Message],
        max_tokens: int = 512,
        temperature: float = 0.1,
        model: Optional[str] = None,
    ) -> Optional[str]:
        raise NotImplementedError


# -------------------------- LiteLLM client --------------------------
def chat_completions_url(base_url: str) -> str:
    base = base_url.rstrip("/")
    return f"{base}/chat/completions" if base.endswith("/v1") else f"{base}/v1/chat/completions"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class LiteLLMClient(LLMClient):
    def __init__(self, base_url: str, api_key: str, model: str, debug_log: Optional[str] = None):
        self.endpoint = chat_completions_url(base_url)
        self.api_key = api_key
        self.model = model
        self.debug_log = Path(debug_log) if debug_log else None

    @classmethod
    def from_env(cls) -> Optional["LiteLLMClient"]:
        base_url = os.getenv("LITELLM_BASE_URL", "")
        api_key = os.getenv("LITELLM_API_KEY", "")
        model = os.getenv("LITELLM_MODEL", "")
        if not (base_url and api_key and model):
            return None
        return cls(base_url, api_key, model, os.getenv("LITELLM_DEBUG_LOG") or None)

    def _log(self, *lines: str) -> None:
        if self.debug_log is None:
            return
        try:
            self.debug_log.parent.mkdir(parents=True, exist_ok=True)
            with self.debug_log.open("a", encoding="utf-8") as fh:
                fh.write("\n".join(lines) + "\n\n")
        except OSError as exc:
            warnings.warn(f"LLM debug log not writable ({self.debug_log}): {exc}", RuntimeWarning)

    def complete(
        self,
        messages: List[Message],
        max_tokens: int = 512,
        temperature: float = 0.1,
        model: Optional[str] = None,
    ) -> Optional[str]:
        conn_timeout = float(os.getenv("LITELLM_CONNECT_TIMEOUT_S", "3"))
        read_timeout = float(os.getenv("LITELLM_READ_TIMEOUT_S", "60"))
        retries = int(os.getenv("LITELLM_RETRIES", "1"))
        backoff_s = float(os.getenv("LITELLM_RETRY_BACKOFF_S", "0.5"))

        payload = {
            "model": model or self.model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "messages": [{"role": m.role, "content": m.content} for m in messages],
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        self._log(
            f"--- LLM REQUEST {_now()} ---",
            f"model: {payload['model']}",
            *(f"[{m.role}] {m.content}" for m in messages),
        )

        attempt = 0
        while True:
            try:
                r = requests.post(self.endpoint, headers=headers, json=payload, timeout=(conn_timeout, read_timeout))
                r.raise_for_status()
                content = r.json()["choices"][0]["message"]["content"]
                if not isinstance(content, str):
                    self._log(f"--- LLM EMPTY RESPONSE {_now()} ---")
                    return None
                self._log(f"--- LLM RESPONSE {_now()} ---", f"output_chars: {len(content)}", content)
                return content
            except (requests.ReadTimeout, requests.ConnectTimeout):
                attempt += 1
                if attempt > retries:
                    self._log(f"--- LLM TIMEOUT {_now()} --- after {attempt} attempts")
                    return None
                time.sleep(backoff_s)
            except requests.RequestException as exc:
                self._log(f"--- LLM ERROR {_now()} ---", repr(exc))
                return None
            except (ValueError, KeyError, IndexError, TypeError) as exc:
                self._log(f"--- LLM BAD PAYLOAD {_now()} ---", repr(exc))
                return None


# -------------------------- Output parsing & guards --------------------------
_RE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)\s*```", re.IGNORECASE)
_RE_OBJECT = re.compile(r"\{[\s\S]*\}")
_RE_ARRAY = re.compile(r"\[[\s\S]*\]")


def strip_fence(text: str) -> str:
    m = _RE_FENCE.search(text or "")
    return m.group(1).strip() if m else (text or "").strip()


def extract_json_block(text: str, pattern: "re.Pattern[str]" = _RE_OBJECT) -> str:
    # fenced block first, else the outermost {...} (or [...])
    inner = strip_fence(text)
    m = pattern.search(inner)
    return m.group(0).strip() if m else inner


def within_length(original: str, candidate: str, tolerance: float = LENGTH_TOLERANCE) -> bool:
    if not candidate.strip():
        return False
    base = max(len(original.strip()), 1)
    return abs(len(candidate.strip()) - base) <= tolerance * base


def load_system_prompt(path: Optional[Path] = None) -> str:
    return (path or PROMPT_PATH).read_text(encoding="utf-8")


# -------------------------- Enhancer --------------------------
class TextEnhancer:
    """Guarded LLM passes; ``audit`` records the outcome of each operation."""

    def __init__(self, client: Optional[LLMClient] = None, system_prompt: Optional[str] = None):
        self.client = client
        self._system_prompt = system_prompt
        self.audit: Dict[str, str] = {}

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def _ask(self, system: str, user: str, max_tokens: int) -> Optional[str]:
        assert self.client is not None
        return self.client.complete(
            [Message("system", system), Message("user", user)],
            max_tokens=max_tokens,
            temperature=0.1,
        )

    def _reject(self, op: str, reason: str) -> None:
        self.audit[op] = reason
        warnings.warn(f"LLM {op} {reason}; keeping the input unchanged.", RuntimeWarning)

    def enhance_headings(self, text: str) -> str:
        if not self.enabled or not (text or "").strip():
            self.audit["headings"] = "disabled" if not self.enabled else "skipped"
            return text
        out = self._ask(HEADING_PROMPT, text, max_tokens=max(512, len(text) // 2))
        if out is None:
            self._reject("headings", "failed")
            return text
        cleaned = strip_fence(out)
        if not within_length(text, cleaned):
            self._reject("headings", "rejected")
            return text
        self.audit["headings"] = "ok"
        return cleaned

    def enhance_citations(self, blocks: Sequence[str]) -> List[str]:
        original = list(blocks)
        if not self.enabled or not original:
            self.audit["citations"] = "disabled" if not self.enabled else "skipped"
            return original
        out = self._ask(CITATION_PROMPT, json.dumps(original), max_tokens=max(512, sum(map(len, original)) // 2))
        if out is None:
            self._reject("citations", "failed")
            return original
        try:
            revised = json.loads(extract_json_block(out, _RE_ARRAY))
        except ValueError:
            self._reject("citations", "rejected")
            return original
        if (
            not isinstance(revised, list)
            or len(revised) != len(original)
            or not all(isinstance(r, str) and within_length(o, r) for o, r in zip(original, revised))
        ):
            self._reject("citations", "rejected")
            return original
        self.audit["citations"] = "ok"
        return [r.strip() for r in revised]

    def extract_structured_data(self, text: str) -> Optional[Dict[str, Any]]:
        if not self.enabled or not (text or "").strip():
            self.audit["structured"] = "disabled" if not self.enabled else "skipped"
            return None
        prompt = self._system_prompt if self._system_prompt is not None else load_system_prompt()
        out = self._ask(prompt, text, max_tokens=4096)
        if out is None:
            self._reject("structured", "failed")
            return None
        try:
            data = json.loads(extract_json_block(out))
        except ValueError:
            self._reject("structured", "rejected")
            return None
        if not isinstance(data, dict):
            self._reject("structured", "rejected")
            return None
        self.audit["structured"] = "ok"
        return data


def create_enhancer() -> TextEnhancer:
    """Enabled when LITELLM_BASE_URL, LITELLM_API_KEY and LITELLM_MODEL are all set."""
    return TextEnhancer(LiteLLMClient.from_env())
