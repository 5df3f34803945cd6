from typing import Protocol


class TextGenerator(Protocol):
    """Text-generation collaborator. Returns the raw model text (JSON when json_mode is set)."""

    model_name: str

    def generate(self, prompt: str, *, json_mode: bool = True, temperature: float = 0.2) -> str: ...
