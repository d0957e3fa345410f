"""
Prompt loader for the coaching advice gateway.

Loads the coach's system prompt and user template from YAML and renders
a CoachingContext into the final user prompt.
"""

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from app.domain.coaching.entities import CoachingContext

logger = logging.getLogger(__name__)

DEFAULT_PROMPTS_PATH = Path(__file__).parent / "prompts.yaml"


class PromptLoader:
    """Load and render coaching prompts from YAML."""

    def __init__(self, config_path: Optional[Path | str] = None) -> None:
        """
        Initialize prompt loader.

        Args:
            config_path: Path to a prompts.yaml file. Defaults to the bundled one.
        """
        self.config_path = Path(config_path) if config_path else DEFAULT_PROMPTS_PATH
        self.prompts = self._load_prompts()

    def _load_prompts(self) -> dict[str, Any]:
        """Load prompts from YAML, falling back to built-in text."""
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                prompts = yaml.safe_load(f) or {}
            logger.info("Loaded prompts from %s", self.config_path)
            return prompts
        except (OSError, yaml.YAMLError) as exc:
            logger.error("Failed to load prompts from %s: %s", self.config_path, exc)
            return self._get_fallback_prompts()

    def _get_fallback_prompts(self) -> dict[str, Any]:
        """Fallback prompts if YAML fails to load."""
        return {
            "coaching": {
                "system": "You are a trading performance coach. Be concise and constructive.",
                "user_template": (
                    "Recent trades:\n{recent_trades}\n\n"
                    "Similar trades:\n{similar_trades}\n\n"
                    "Risk Score: {risk_score}/100\n{behaviors}\n\n"
                    "Give 3-5 coaching insights."
                ),
            }
        }

    @property
    def _coaching(self) -> dict[str, Any]:
        return self.prompts.get("coaching", {})

    def get_system_prompt(self) -> str:
        return self._coaching.get("system", "You are a trading performance coach.")

    def render_user_prompt(self, context: CoachingContext) -> str:
        """
        Render the user prompt for a coaching request.

        Args:
            context: Recent trades, similar trades and the anomaly report.

        Returns:
            Formatted user prompt.
        """
        recent = "\n".join(
            f"- {t.symbol} {t.direction.value} | Size: {t.size:g} | Entry: {t.entry_price:g} "
            f"| Exit: {t.exit_price:g} | P/L: {t.pnl:g} | Time: {t.timestamp.isoformat()}"
            for t in context.recent_trades
        )
        similar = "\n".join(
            f"- {s.trade.symbol} {s.trade.direction.value} | Size: {s.trade.size:g} "
            f"| P/L: {s.trade.pnl:g} | Similarity: {s.similarity * 100:.1f}%"
            for s in context.similar_trades
        ) or self._coaching.get("empty_similar", "No similar historical patterns found.")
        behaviors = "\n".join(
            f"- {b.type.value} ({b.severity.value}): {b.description}"
            for b in context.anomaly_report.behaviors
        ) or self._coaching.get("empty_behaviors", "No anomalies detected.")

        template = self._coaching.get(
            "user_template", self._get_fallback_prompts()["coaching"]["user_template"]
        )
        return template.format(
            recent_trades=recent,
            similar_trades=similar,
            risk_score=context.anomaly_report.risk_score,
            behaviors=behaviors,
        )
