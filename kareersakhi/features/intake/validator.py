"""
Upload intake validation.

Checks a candidate résumé file against size and type constraints before it
is handed to any analysis engine. Rules run in order and the first failure
wins:

1. byte size over the limit  -> rejected ("file too large")
2. missing / disallowed type -> rejected ("unsupported type")
3. otherwise                 -> accepted

Validation is pure. Callers surface the rejection reason and drop any
previously accepted artifact when a new selection is rejected.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Optional, Sequence, Union

DEFAULT_ACCEPTED_FILE_TYPES = ".pdf,.doc,.docx"
DEFAULT_MAX_FILE_SIZE_MB = 5
BYTES_PER_MB = 1024 * 1024

REASON_TOO_LARGE = "file too large"
REASON_UNSUPPORTED_TYPE = "unsupported type"
REASON_NO_FILE = "no file selected"


def normalize_extension(ext: str) -> str:
    return ext.strip().lstrip(".").lower()


def describe_extensions(extensions) -> str:
    """Format normalized extensions the way an accept string lists them."""
    return ",".join(f".{e}" for e in sorted(extensions))


def extension_of(filename: str) -> Optional[str]:
    """Return the lower-cased text after the last dot, or None."""
    if "." not in filename:
        return None
    ext = filename.rsplit(".", 1)[1].lower()
    return ext or None


@dataclass(frozen=True)
class IntakeConstraints:
    allowed_extensions: FrozenSet[str]
    max_bytes: int

    def __post_init__(self):
        object.__setattr__(
            self,
            "allowed_extensions",
            frozenset(normalize_extension(e) for e in self.allowed_extensions if normalize_extension(e)),
        )

    @classmethod
    def from_accept(
        cls,
        accepted_file_types: str = DEFAULT_ACCEPTED_FILE_TYPES,
        max_file_size_mb: float = DEFAULT_MAX_FILE_SIZE_MB,
    ) -> "IntakeConstraints":
        """Build constraints from an accept string like ".pdf,.doc,.docx"."""
        return cls(
            allowed_extensions=frozenset(accepted_file_types.split(",")),
            max_bytes=int(max_file_size_mb * BYTES_PER_MB),
        )


@dataclass(frozen=True)
class UploadedArtifact:
    name: str
    byte_size: int
    content: bytes = field(default=b"", repr=False, compare=False)
    content_type: Optional[str] = None

    @property
    def extension(self) -> Optional[str]:
        return extension_of(self.name)

    @classmethod
    def from_bytes(cls, name: str, content: bytes, content_type: Optional[str] = None) -> "UploadedArtifact":
        return cls(name=name, byte_size=len(content), content=content, content_type=content_type)


@dataclass(frozen=True)
class Accepted:
    artifact: UploadedArtifact
    accepted = True


@dataclass(frozen=True)
class Rejected:
    reason: str
    limit: Optional[int] = None
    allowed: Optional[FrozenSet[str]] = None
    accepted = False

    @property
    def message(self) -> str:
        """Human-readable message for inline display."""
        if self.reason == REASON_TOO_LARGE and self.limit is not None:
            mb = self.limit / BYTES_PER_MB
            return f"File is too large. Maximum size is {mb:g}MB"
        if self.reason == REASON_UNSUPPORTED_TYPE and self.allowed is not None:
            return f"File type not supported. Accepted types: {describe_extensions(self.allowed)}"
        if self.reason == REASON_NO_FILE:
            return "Please select a file to upload"
        return self.reason


IntakeResult = Union[Accepted, Rejected]


def validate(artifact: UploadedArtifact, constraints: IntakeConstraints) -> IntakeResult:
    if artifact.byte_size > constraints.max_bytes:
        return Rejected(REASON_TOO_LARGE, limit=constraints.max_bytes)

    ext = artifact.extension
    if ext is None or ext not in constraints.allowed_extensions:
        return Rejected(REASON_UNSUPPORTED_TYPE, allowed=constraints.allowed_extensions)

    return Accepted(artifact)


def validate_selection(artifacts: Sequence[UploadedArtifact], constraints: IntakeConstraints) -> IntakeResult:
    """Validate the first file of a selection (drag-and-drop or picker)."""
    if not artifacts:
        return Rejected(REASON_NO_FILE)
    return validate(artifacts[0], constraints)
