"""In-session accumulator of accepted transcripts, keyed by question id."""

from collections.abc import Iterator

from interview_capture.core.exceptions import InvalidStateError


class AnswerStore:
    """Insertion-ordered mapping of question id to transcript.

    Last write wins. Once frozen (session completed) the store is the
    submission record and rejects every mutation.
    """

    def __init__(self) -> None:
        self._answers: dict[int, str] = {}
        self._frozen = False

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._answers

    def __len__(self) -> int:
        return len(self._answers)

    def __iter__(self) -> Iterator[int]:
        return iter(self._answers)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, question_id: int) -> str | None:
        return self._answers.get(question_id)

    def items(self) -> list[tuple[int, str]]:
        """Return (question_id, transcript) pairs in insertion order."""
        return list(self._answers.items())

    def as_dict(self) -> dict[int, str]:
        return dict(self._answers)

    def put(self, question_id: int, transcript: str) -> None:
        self._check_mutable("store an answer")
        self._answers[question_id] = transcript

    def discard(self, question_id: int) -> bool:
        """Remove an answer. Returns True if one was present."""
        self._check_mutable("clear an answer")
        return self._answers.pop(question_id, None) is not None

    def freeze(self) -> None:
        self._frozen = True

    def _check_mutable(self, operation: str) -> None:
        if self._frozen:
            raise InvalidStateError(operation, "the interview is completed")
