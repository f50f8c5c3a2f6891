"""
Interaction statistics

Every parsed prompt is recorded with the intent it resolved to and whether the
parse produced a usable answer. The log is bounded; the oldest records fall
off first. ``summary()`` backs the ``/api/ai-stats`` endpoint.
"""

import logging
import re
import time
from collections import Counter, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, List, Optional

logger = logging.getLogger(__name__)

UNKNOWN_INTENT = "unknown"
_WORD_SPLIT_RE = re.compile(r"\W+")


@dataclass
class Interaction:
    user_prompt: str
    matched_intent: Optional[str]
    successful: bool
    timestamp: float
    wallet_connected: Optional[bool] = None
    response_latency_ms: Optional[float] = None
    tokens_mentioned: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "userPrompt": self.user_prompt,
            "matchedIntent": self.matched_intent,
            "successful": self.successful,
            "timestamp": int(self.timestamp * 1000),
        }
        if self.wallet_connected is not None:
            data["walletConnected"] = self.wallet_connected
        if self.response_latency_ms is not None:
            data["responseLatency"] = round(self.response_latency_ms, 2)
        if self.tokens_mentioned:
            data["tokensMentioned"] = list(self.tokens_mentioned)
        return data


class InteractionStats:
    def __init__(self, max_records: int = 1000, clock: Callable[[], float] = time.time):
        self._records: Deque[Interaction] = deque(maxlen=max_records)
        self._clock = clock

    def record(
        self,
        user_prompt: str,
        matched_intent: Optional[str],
        successful: bool,
        wallet_connected: Optional[bool] = None,
        latency_ms: Optional[float] = None,
        tokens_mentioned: Optional[List[str]] = None,
    ) -> Interaction:
        interaction = Interaction(
            user_prompt=user_prompt,
            matched_intent=matched_intent,
            successful=successful,
            timestamp=self._clock(),
            wallet_connected=wallet_connected,
            response_latency_ms=latency_ms,
            tokens_mentioned=list(tokens_mentioned or []),
        )
        self._records.append(interaction)
        logger.debug(
            "Recorded interaction: %s - %s",
            matched_intent or "unknown intent",
            "success" if successful else "failure",
        )
        return interaction

    def interactions(self) -> List[Interaction]:
        return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def intent_distribution(self) -> Dict[str, int]:
        return dict(Counter(r.matched_intent or UNKNOWN_INTENT for r in self._records))

    def success_by_intent(self) -> Dict[str, Dict[str, Any]]:
        stats: Dict[str, Dict[str, Any]] = {}
        for r in self._records:
            entry = stats.setdefault(r.matched_intent or UNKNOWN_INTENT, {"success": 0, "total": 0, "rate": 0.0})
            entry["total"] += 1
            if r.successful:
                entry["success"] += 1
            entry["rate"] = entry["success"] / entry["total"]
        return stats

    def wallet_connection_impact(self) -> Dict[str, Dict[str, Any]]:
        """Success rates split by whether a wallet was connected; unknown states are skipped."""
        impact = {
            "connected": {"success": 0, "total": 0, "rate": 0.0},
            "disconnected": {"success": 0, "total": 0, "rate": 0.0},
        }
        for r in self._records:
            if r.wallet_connected is None:
                continue
            entry = impact["connected" if r.wallet_connected else "disconnected"]
            entry["total"] += 1
            if r.successful:
                entry["success"] += 1
        for entry in impact.values():
            entry["rate"] = entry["success"] / entry["total"] if entry["total"] else 0.0
        return impact

    def pattern_suggestions(self, limit: int = 5) -> List[str]:
        """
        Most frequent words and two/three-word phrases across failed prompts.

        Phrases are anchored on words of three or more characters.
        """
        phrases: Counter = Counter()
        for r in self._records:
            if r.successful:
                continue
            words = [w for w in _WORD_SPLIT_RE.split(r.user_prompt.lower()) if w]
            for i, word in enumerate(words):
                if len(word) < 3:
                    continue
                phrases[word] += 1
                if i + 1 < len(words):
                    phrases[" ".join(words[i:i + 2])] += 1
                if i + 2 < len(words):
                    phrases[" ".join(words[i:i + 3])] += 1
        return [phrase for phrase, _ in phrases.most_common(limit)]

    def summary(self, recent: int = 10) -> Dict[str, Any]:
        total = len(self._records)
        successful = sum(1 for r in self._records if r.successful)
        rate = successful / total * 100 if total else 0.0
        return {
            "totalInteractions": total,
            "successfulInteractions": successful,
            "successRate": f"{rate:.2f}%",
            "intentDistribution": self.intent_distribution(),
            "successByIntent": self.success_by_intent(),
            "walletConnectionImpact": self.wallet_connection_impact(),
            "patternSuggestions": self.pattern_suggestions(),
            "recentInteractions": [r.to_dict() for r in reversed(list(self._records)[-recent:])] if recent > 0 else [],
        }

    def reset(self) -> None:
        self._records.clear()
