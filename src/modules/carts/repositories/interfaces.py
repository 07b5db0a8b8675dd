"""Cart repository interface."""

from __future__ import annotations

from abc import ABC, abstractmethod


class ICartRepository(ABC):
    @abstractmethod
    def clear_for_user(self, user_id: int) -> int:
        """Remove every cart line owned by ``user_id``; returns the count."""
