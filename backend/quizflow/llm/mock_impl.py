"""
Mock LLM: deterministic placeholder questions when no API key is configured (local runs only).
"""
import hashlib
import json
import re

_COUNT_RE = re.compile(r"exactly (\d+)")


class MockLLMClient:
    """Returns {"questions": [...]} with as many entries as the prompt asks for."""

    model_name = "mock"

    def complete_json(self, system: str, prompt: str) -> str:
        match = _COUNT_RE.search(prompt)
        n = max(1, min(30, int(match.group(1)))) if match else 1
        seed = hashlib.sha256(prompt.encode("utf-8")).hexdigest()[:8]
        questions = []
        for i in range(n):
            options = [f"Option {label} ({seed}-{i + 1})" for label in "ABCD"]
            questions.append({
                "question": f"[Mock {seed}] Question {i + 1}: What is the main idea of the lecture?",
                "options": options,
                "correctAnswer": options[i % 4],
                "explanation": "Mock explanation. Set an LLM API key for real generation.",
            })
        return json.dumps({"questions": questions})
