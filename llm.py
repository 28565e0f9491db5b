# llm.py
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Protocol, Union

import requests


class ServiceError(RuntimeError):
    """A collaborator (rewrite service, remote fetch) failed."""


class ToneAdjuster(Protocol):
    def rewrite(self, text: str) -> str: ...


def ollama_is_available(base_url: str = "http://localhost:11434", timeout: int = 2) -> bool:
    try:
        r = requests.get(f"{base_url}/api/tags", timeout=timeout)
        return r.status_code == 200
    except requests.RequestException:
        return False


@dataclass
class ToneAdjusterConfig:
    mode: str = "none"  # none|ollama
    model: str = "phi3:mini"
    base_url: str = "http://localhost:11434"
    timeout: int = 120


# keyword -> leadership-ready sentence; first hit wins
KEYWORD_REWRITES = [
    (("api", "backend"), "Backend API successfully deployed with enhanced authentication protocols."),
    (("delay", "miss"), "Project timeline requires adjustment due to third-party integration delays."),
    (("complete", "finish"), "Milestone completed ahead of schedule, enabling accelerated testing phase."),
    (("issue", "problem"), "Critical system vulnerability identified; remediation plan in progress."),
]
DEFAULT_REWRITE = "Task progressing as planned with no significant deviations from timeline."


class KeywordToneAdjuster:
    """
    Offline fallback: fixed keyword -> sentence substitutions.
    Never fails.
    """
    def rewrite(self, text: str) -> str:
        low = (text or "").lower()
        for keywords, sentence in KEYWORD_REWRITES:
            if any(k in low for k in keywords):
                return sentence
        return DEFAULT_REWRITE


class OllamaToneAdjuster:
    """
    Rewrites one status line for a leadership audience via Ollama /api/generate.
    """
    def __init__(self, cfg: ToneAdjusterConfig):
        self.cfg = cfg

    def _generate(self, prompt: str) -> str:
        payload = {
            "model": self.cfg.model,
            "prompt": (
                "SYSTEM: You rewrite status updates for executives. Return ONLY the rewritten sentence.\n\n"
                f"USER:\n{prompt}\n"
            ),
            "stream": False,
            "options": {"temperature": 0.1},
        }
        try:
            r = requests.post(f"{self.cfg.base_url}/api/generate", json=payload, timeout=self.cfg.timeout)
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise ServiceError(f"rewrite request failed: {e}") from e
        return data.get("response", "")

    def rewrite(self, text: str) -> str:
        prompt = f"""
Rewrite the status update below as one concise, leadership-ready sentence.

Rules:
- Keep every fact, number and name.
- Do NOT invent facts.
- No bullet markers, no quotes.

UPDATE:
{text}
""".strip()

        out = self._generate(prompt).strip().strip('"').strip()
        if not out:
            raise ServiceError("rewrite service returned an empty response")
        return out


def adjust_text(adjuster: ToneAdjuster, text: Union[str, List[str]]) -> Union[str, List[str]]:
    if isinstance(text, str):
        return adjuster.rewrite(text)
    if isinstance(text, list):
        return [adjuster.rewrite(t) for t in text]
    raise TypeError("Input must be a string or list of strings")


def pick_tone_adjuster(cfg: ToneAdjusterConfig) -> ToneAdjuster:
    if cfg.mode == "ollama":
        if ollama_is_available(base_url=cfg.base_url):
            return OllamaToneAdjuster(cfg)
        print("[warn] Ollama not available. Falling back to keyword rewrites.")
    return KeywordToneAdjuster()


# -------------------------
# Remote demo data
# -------------------------
def fetch_demo_csv(url: str, timeout: int = 30) -> str:
    try:
        r = requests.get(url, timeout=timeout)
        r.raise_for_status()
    except requests.RequestException as e:
        raise ServiceError(f"could not fetch {url}: {e}") from e
    r.encoding = r.encoding or "utf-8"
    return r.text
