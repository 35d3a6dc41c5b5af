"""Database models for course content.

Cassandra table definitions for:
- Courses: Course metadata, ordered section ids, enrolled students, reviews
- Sections: Ordered lesson ids, owned by exactly one course
- Lessons: Video lessons, owned by exactly one section

Ownership is strictly hierarchical (course -> section -> lesson); nothing
is shared between courses.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from coursemart.core.timeutils import ensure_utc_aware, utcnow


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# enrolled_student_ids is a SET so a student can never appear twice
COURSE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.courses (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    thumbnail_url TEXT,
    instructor_id UUID,
    price DECIMAL,
    section_ids LIST<UUID>,
    enrolled_student_ids SET<UUID>,
    review_ids LIST<UUID>,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

SECTION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.sections (
    id UUID PRIMARY KEY,
    course_id UUID,
    title TEXT,
    lesson_ids LIST<UUID>,
    created_at TIMESTAMP
)
"""

LESSON_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.lessons (
    id UUID PRIMARY KEY,
    section_id UUID,
    title TEXT,
    description TEXT,
    video_url TEXT,
    duration_seconds INT,
    created_at TIMESTAMP
)
"""

COURSES_TABLES_CQL = [
    COURSE_TABLE_CQL,
    SECTION_TABLE_CQL,
    LESSON_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


class Course:
    """Course entity.

    Attributes:
        id: Unique identifier
        title: Course title
        description: Course description
        thumbnail_url: Cover image URL
        instructor_id: Authoring instructor
        price: Price in major currency units (orders charge price * 100)
        section_ids: Sections in display order
        enrolled_student_ids: Students who completed a purchase
        review_ids: Ratings and reviews left on the course
    """

    def __init__(
        self,
        id: UUID | None = None,
        title: str = "",
        description: str = "",
        thumbnail_url: str | None = None,
        instructor_id: UUID | None = None,
        price: Decimal = Decimal(0),
        section_ids: list[UUID] | None = None,
        enrolled_student_ids: set[UUID] | None = None,
        review_ids: list[UUID] | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.title = title.strip()
        self.description = description
        self.thumbnail_url = thumbnail_url
        self.instructor_id = instructor_id
        self.price = price
        self.section_ids = list(section_ids or ())
        self.enrolled_student_ids = set(enrolled_student_ids or ())
        self.review_ids = list(review_ids or ())
        self.created_at = ensure_utc_aware(created_at) or utcnow()
        self.updated_at = ensure_utc_aware(updated_at) or self.created_at

    def is_student_enrolled(self, user_id: UUID) -> bool:
        return user_id in self.enrolled_student_ids

    @classmethod
    def from_row(cls, row: Any) -> "Course":
        """Create Course instance from Cassandra row (empty collections are None)."""
        return cls(
            id=row.id,
            title=row.title or "",
            description=row.description or "",
            thumbnail_url=row.thumbnail_url,
            instructor_id=row.instructor_id,
            price=row.price if row.price is not None else Decimal(0),
            section_ids=row.section_ids,
            enrolled_student_ids=row.enrolled_student_ids,
            review_ids=row.review_ids,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "thumbnail_url": self.thumbnail_url,
            "instructor_id": self.instructor_id,
            "price": self.price,
            "section_ids": self.section_ids,
            "enrolled_count": len(self.enrolled_student_ids),
            "created_at": self.created_at,
        }

    def __repr__(self) -> str:
        return f"<Course {self.id} '{self.title}'>"


class Section:
    def __init__(
        self,
        course_id: UUID,
        title: str = "",
        id: UUID | None = None,
        lesson_ids: list[UUID] | None = None,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.course_id = course_id
        self.title = title.strip()
        self.lesson_ids = list(lesson_ids or ())
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Section":
        return cls(
            id=row.id,
            course_id=row.course_id,
            title=row.title or "",
            lesson_ids=row.lesson_ids,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Section {self.id} lessons={len(self.lesson_ids)}>"


class Lesson:
    def __init__(
        self,
        section_id: UUID,
        title: str = "",
        id: UUID | None = None,
        description: str = "",
        video_url: str | None = None,
        duration_seconds: int = 0,
        created_at: datetime | None = None,
    ):
        self.id = id or uuid4()
        self.section_id = section_id
        self.title = title.strip()
        self.description = description
        self.video_url = video_url
        self.duration_seconds = duration_seconds
        self.created_at = ensure_utc_aware(created_at) or utcnow()

    @classmethod
    def from_row(cls, row: Any) -> "Lesson":
        return cls(
            id=row.id,
            section_id=row.section_id,
            title=row.title or "",
            description=row.description or "",
            video_url=row.video_url,
            duration_seconds=row.duration_seconds or 0,
            created_at=row.created_at,
        )

    def __repr__(self) -> str:
        return f"<Lesson {self.id} '{self.title}'>"


@dataclass
class CourseStructure:
    """A course with its sections (in order) and their lessons."""

    course: Course
    sections: list[Section] = field(default_factory=list)
    lessons: dict[UUID, list[Lesson]] = field(default_factory=dict)

    @property
    def lesson_ids(self) -> set[UUID]:
        """Every lesson id reachable through the course's sections."""
        return {lid for section in self.sections for lid in section.lesson_ids}

    @property
    def total_lessons(self) -> int:
        return sum(len(section.lesson_ids) for section in self.sections)

    @property
    def total_duration_seconds(self) -> int:
        """Sum over loaded lesson rows (requires ``include_lessons``)."""
        return sum(
            lesson.duration_seconds
            for lessons in self.lessons.values()
            for lesson in lessons
        )


def format_duration(total_seconds: int) -> str:
    """Largest two units: ``"1h 30m"``, ``"45m 15s"`` or ``"30s"``."""
    hours, rest = divmod(max(total_seconds, 0), 3600)
    minutes, seconds = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m"
    if minutes:
        return f"{minutes}m {seconds}s"
    return f"{seconds}s"
