"""Event logger built on the stdlib ``logging`` module."""

from __future__ import annotations

import logging
import os


class ClientLogger:
    """Structured event logger.

    Events are addressed by ``(domain, action)``; the human text comes from the
    event template catalog and extra keyword context is appended in DEBUG mode.
    Handlers are left to the host application (see ``logging_config``).
    """

    def __init__(self, name: str = "kra_client") -> None:
        self.logger = logging.getLogger(name)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)

    def log_event(
        self,
        domain: str,
        action: str,
        level: int = logging.INFO,
        human: str | None = None,
        *,
        exc_info: bool = False,
        **kwargs: object,
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return
        event_name = f"{domain}_{action}".lower()
        human_text = human
        if human_text is None:
            # Local import to avoid cyclic import issues during module init.
            from .event_catalog import EVENT_TEMPLATES as _event_templates

            template = _event_templates.get((domain, action))
            if template:
                try:
                    human_text = template.format(**kwargs)
                except (KeyError, IndexError, ValueError):
                    human_text = template
            else:
                human_text = f"{domain.replace('_', ' ')}: {action.replace('_', ' ')}"
        msg = (
            self._build_debug_message(event_name, human_text, kwargs)
            if self._is_debug_enabled()
            else human_text
        )
        self.logger.log(level, msg, exc_info=exc_info)

    @staticmethod
    def _is_debug_enabled() -> bool:
        return os.environ.get("KRA_DEBUG", "false").lower() in ("true", "1", "yes")

    @staticmethod
    def _build_debug_message(
        event_name: str, human_text: str, kwargs: dict[str, object]
    ) -> str:
        context = ", ".join(f"{k}={v}" for k, v in kwargs.items())
        # Pad / truncate event name to a fixed column for alignment
        width = 28
        if len(event_name) <= width:
            ev = event_name.ljust(width)
        else:
            ev = event_name[: width - 1] + "…"
        base = f"{ev} {human_text}"
        if context:
            base = f"{base} ({context})"
        return base


logger = ClientLogger()
