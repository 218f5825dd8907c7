"""
Teacher qualification data.

Qualification (which subjects a teacher teaches at which branches) is
owned by an external directory; the engine only reads it.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet

from .session import split_ids


@dataclass(frozen=True)
class TeacherProfile:
    """
    Teacher as seen by the availability search.

    Attributes:
        teacher_id: Teacher identifier
        first_name: Given name
        last_name: Family name
        subjects: Subjects the teacher is qualified for
        branches: Branches the teacher is assigned to

    Examples:
        >>> teacher = TeacherProfile(
        ...     teacher_id="t_1",
        ...     first_name="Anna",
        ...     last_name="Petrova",
        ...     subjects=frozenset({"English"}),
        ...     branches=frozenset({"Okskaya"}),
        ... )
        >>> teacher.full_name
        'Anna Petrova'
    """

    teacher_id: str
    first_name: str = ""
    last_name: str = ""
    subjects: FrozenSet[str] = field(default_factory=frozenset)
    branches: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def full_name(self) -> str:
        """"First Last", falling back to the id when both are blank."""
        name = f"{self.first_name} {self.last_name}".strip()
        return name or self.teacher_id

    def teaches(self, subject: str, branch: str) -> bool:
        """Check if the teacher is qualified for subject at branch."""
        return subject in self.subjects and branch in self.branches

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TeacherProfile':
        """
        Create instance from a dictionary (JSON or CSV row).

        `subjects` and `branches` may be lists or ";"-separated strings.
        """
        return cls(
            teacher_id=str(data["teacher_id"]),
            first_name=str(data.get("first_name") or ""),
            last_name=str(data.get("last_name") or ""),
            subjects=frozenset(split_ids(data.get("subjects"))),
            branches=frozenset(split_ids(data.get("branches"))),
        )
