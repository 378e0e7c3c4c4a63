from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import Tone


class INotifier(ABC):
    """Port for transient user-facing notifications ("toasts")."""

    @abstractmethod
    def notify(self, tone: Tone, text: str) -> None:
        raise NotImplementedError
