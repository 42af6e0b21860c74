"""Question policy: topic detection and phase rules."""

import re
from collections.abc import Iterable

from parley.config.models.interview import InterviewConfig, TopicConfig
from parley.interview.models import InterviewSession, Phase


class TopicCatalog:
    """Required topics with compiled keyword matchers."""

    def __init__(self, topics: Iterable[TopicConfig]) -> None:
        self._topics = list(topics)
        self._patterns = {
            topic.id: re.compile(
                "|".join(rf"(?<!\w){re.escape(k)}(?!\w)" for k in topic.keywords),
                re.IGNORECASE,
            )
            for topic in self._topics
        }

    def __len__(self) -> int:
        return len(self._topics)

    @property
    def topics(self) -> list[TopicConfig]:
        return list(self._topics)

    def label(self, topic_id: str) -> str:
        for topic in self._topics:
            if topic.id == topic_id:
                return topic.label
        return topic_id

    def detect(self, text: str) -> list[str]:
        """Topic ids whose keywords occur in ``text``, in catalog order."""
        return [t.id for t in self._topics if self._patterns[t.id].search(text)]

    def next_uncovered(self, covered: Iterable[str]) -> TopicConfig | None:
        seen = set(covered)
        for topic in self._topics:
            if topic.id not in seen:
                return topic
        return None

    def coverage(self, covered: Iterable[str]) -> float:
        if not self._topics:
            return 1.0
        known = {t.id for t in self._topics}
        return len(known & set(covered)) / len(self._topics)


class PhaseRules:
    """Decides the phase a session reaches after a turn.

    - introduction until the first user turn
    - exploring afterwards
    - completing once coverage reaches the threshold or the question count
      reaches ``completing_after_questions``
    - completed once coverage reaches the threshold and the question count
      reaches ``min_questions``
    """

    def __init__(self, config: InterviewConfig, catalog: TopicCatalog) -> None:
        self._config = config
        self._catalog = catalog

    def evaluate(self, topics_covered: Iterable[str], questions_asked: int) -> Phase:
        coverage = self._catalog.coverage(topics_covered)
        covered_enough = coverage >= self._config.coverage_threshold
        if covered_enough and questions_asked >= self._config.min_questions:
            return Phase.COMPLETED
        if covered_enough or questions_asked >= self._config.completing_after_questions:
            return Phase.COMPLETING
        if questions_asked >= 1:
            return Phase.EXPLORING
        return Phase.INTRODUCTION

    def after_turn(self, session: InterviewSession, detected: list[str]) -> Phase:
        """Phase after recording a turn with the given detected topics."""
        topics = [*session.topics_covered, *detected]
        return max(session.phase, self.evaluate(topics, session.questions_asked + 1))
