"""
Assignment lifecycle engine.

Submission status is a derived view: submitted/late is recomputed from
submitted_at vs due_date whenever an assignment is read (evaluate_status).
Only `graded` is persisted as ground truth, and it is never reverted by
evaluation. Resubmission replaces the student's submission in place and
starts it over as `submitted`.
"""

import logging
from datetime import datetime
from typing import Callable, List, Optional

from app.core.errors import NotFoundError, ValidationError
from app.models.entities import (
    Assignment, ClassRecord, Role, Submission, SubmissionStatus, User, utcnow,
)
from app.services.classes import records_subject
from app.services.files import FileRef, FileStore
from app.services.policy import Action, authorize
from app.services.store import Store
from app.services import views
from app.utils.dates import parse_timestamp

logger = logging.getLogger(__name__)

MIN_GRADE = 0
MAX_GRADE = 100


def evaluate_status(assignment: Assignment) -> Assignment:
    """Recompute submitted/late for every ungraded submission, in place."""
    for sub in assignment.submissions:
        if sub.status is SubmissionStatus.GRADED:
            continue
        if sub.submitted_at > assignment.due_date:
            sub.status = SubmissionStatus.LATE
        else:
            sub.status = SubmissionStatus.SUBMITTED
    return assignment


class AssignmentEngine:
    def __init__(
        self,
        store: Store,
        file_store: Optional[FileStore] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.file_store = file_store
        self.clock = clock

    def _get_assignment(self, assignment_id: str) -> Assignment:
        assignment = self.store.get_assignment(assignment_id)
        if assignment is None:
            raise NotFoundError("Assignment not found")
        return assignment

    def _get_class(self, class_id: str) -> ClassRecord:
        cls = self.store.get_class(class_id)
        if cls is None:
            raise NotFoundError("Class not found")
        return cls

    # ------------------------------------------------------------------
    # Create / delete
    # ------------------------------------------------------------------
    def create_assignment(
        self, actor: User, title: str, description: str, due_date, class_id: str,
    ) -> Assignment:
        if not title or not description or not due_date or not class_id:
            raise ValidationError("All fields are required")

        cls = self._get_class(class_id)
        authorize(actor, Action.CREATE_ASSIGNMENT, cls,
                  "You can only create assignments for your own classes")

        assignment = Assignment(
            title=title,
            description=description,
            due_date=parse_timestamp(due_date, "due date"),
            class_id=cls.id,
            teacher_id=cls.teacher_id,
        )
        self.store.insert_assignment(assignment)
        logger.info("Assignment %s created in class %s by %s", assignment.title, cls.id, actor.id)
        return assignment

    def delete_assignment(self, actor: User, assignment_id: str) -> None:
        assignment = self._get_assignment(assignment_id)
        authorize(actor, Action.DELETE_ASSIGNMENT, assignment,
                  "You can only delete your own assignments")
        if not self.store.delete_assignment(assignment_id):
            raise NotFoundError("Assignment not found")
        logger.info("Assignment %s deleted by %s", assignment_id, actor.id)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    def _check_submit(self, actor: User, assignment_id: str) -> Assignment:
        assignment = self._get_assignment(assignment_id)
        cls = self._get_class(assignment.class_id)
        authorize(actor, Action.SUBMIT, cls, "You are not enrolled in this class")
        return assignment

    def submit(
        self,
        actor: User,
        assignment_id: str,
        file_ref: Optional[FileRef] = None,
        description: Optional[str] = None,
    ) -> Submission:
        self._check_submit(actor, assignment_id)

        submission = Submission(
            student_id=actor.id,
            submitted_at=self.clock(),
            file_url=file_ref.url if file_ref else None,
            file_name=file_ref.name if file_ref else None,
            description=description,
        )

        def replace(a: Assignment) -> None:
            idx = a.submission_index(actor.id)
            if idx >= 0:
                a.submissions[idx] = submission
            else:
                a.submissions.append(submission)

        updated = evaluate_status(self.store.update_assignment(assignment_id, replace))
        logger.info("Submission for assignment %s by %s", assignment_id, actor.id)
        return updated.submission_for(actor.id)

    def submit_upload(
        self,
        actor: User,
        assignment_id: str,
        data: Optional[bytes],
        filename: Optional[str],
        description: Optional[str] = None,
    ) -> Submission:
        """Store the uploaded file once access is confirmed, then submit."""
        self._check_submit(actor, assignment_id)
        file_ref = None
        if data is not None and filename:
            if self.file_store is None:
                raise ValidationError("File uploads are not available")
            file_ref = self.file_store.store(data, filename)
        return self.submit(actor, assignment_id, file_ref, description)

    # ------------------------------------------------------------------
    # Grading
    # ------------------------------------------------------------------
    def grade(
        self,
        actor: User,
        assignment_id: str,
        student_id: str,
        grade: Optional[float] = None,
        score: Optional[float] = None,
        feedback: Optional[str] = None,
        max_score: Optional[float] = None,
    ) -> Submission:
        if grade is not None and not (MIN_GRADE <= grade <= MAX_GRADE):
            raise ValidationError(f"Grade must be between {MIN_GRADE} and {MAX_GRADE}")
        if score is not None and score < 0:
            raise ValidationError("Score cannot be negative")
        if max_score is not None and max_score <= 0:
            raise ValidationError("Max score must be positive")

        assignment = self._get_assignment(assignment_id)
        authorize(actor, Action.GRADE, assignment,
                  "You can only grade assignments for your own classes")
        if assignment.submission_index(student_id) < 0:
            raise NotFoundError("Submission not found")

        graded_at = self.clock()

        def record_grade(a: Assignment) -> None:
            idx = a.submission_index(student_id)
            if idx < 0:
                raise NotFoundError("Submission not found")
            sub = a.submissions[idx]
            sub.grade = grade
            sub.score = score
            sub.feedback = feedback or ""
            sub.graded_at = graded_at
            sub.status = SubmissionStatus.GRADED
            if max_score is not None and a.max_score != max_score:
                a.max_score = max_score

        updated = self.store.update_assignment(assignment_id, record_grade)
        logger.info("Submission of %s on assignment %s graded by %s", student_id, assignment_id, actor.id)
        return updated.submission_for(student_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    def visible_assignments(self, actor: User) -> List[Assignment]:
        if actor.role is Role.ADMIN:
            found = self.store.list_assignments()
        elif actor.role is Role.TEACHER:
            found = self.store.list_assignments(teacher_id=actor.id)
        else:
            subject = records_subject(self.store, actor)
            if subject is None:
                return []
            class_ids = [c.id for c in self.store.list_classes(student_id=subject.id)]
            found = self.store.list_assignments(class_ids=class_ids)
        return sorted((evaluate_status(a) for a in found), key=lambda a: a.due_date)

    def submissions_overview(self, actor: User, assignment_id: str) -> dict:
        assignment = self._get_assignment(assignment_id)
        authorize(actor, Action.VIEW_SUBMISSIONS, assignment)
        evaluate_status(assignment)

        cls = self.store.get_class(assignment.class_id)
        roster = cls.students if cls else []
        users = views.load_users(
            self.store,
            roster + [assignment.teacher_id] + [s.student_id for s in assignment.submissions],
        )
        classes = {cls.id: cls} if cls else {}
        submitted = {s.student_id for s in assignment.submissions}

        return {
            "assignment": views.assignment_view(assignment, classes, users),
            "class_students": [users[s].public() for s in roster if s in users],
            "unsubmitted_students": [
                users[s].public() for s in roster if s in users and s not in submitted
            ],
        }

    def grades(self, actor: User) -> List[dict]:
        """Grade rows visible to the actor, most recent due date first."""
        if actor.role in (Role.ADMIN, Role.TEACHER):
            assignments = self.visible_assignments(actor)
            student_filter = None
        else:
            subject = records_subject(self.store, actor)
            if subject is None:
                return []
            authorize(actor, Action.READ_RECORDS, subject)
            assignments = self.visible_assignments(actor)
            student_filter = subject.id

        classes = views.load_classes(self.store, [a.class_id for a in assignments])
        users = views.load_users(
            self.store,
            [a.teacher_id for a in assignments]
            + [s.student_id for a in assignments for s in a.submissions],
        )

        rows = []
        for a in sorted(assignments, key=lambda a: a.due_date, reverse=True):
            cls = classes.get(a.class_id)
            teacher = users.get(a.teacher_id)
            for sub in a.submissions:
                if student_filter is not None and sub.student_id != student_filter:
                    continue
                student = users.get(sub.student_id)
                rows.append({
                    "assignment_id": a.id,
                    "assignment_title": a.title,
                    "class_name": cls.name if cls else None,
                    "teacher_name": teacher.username if teacher else None,
                    "student_name": student.username if student else None,
                    "student_id": student.student_id if student else None,
                    "due_date": a.due_date.isoformat(),
                    "submitted_at": sub.submitted_at.isoformat(),
                    "grade": sub.grade,
                    "score": sub.score,
                    "max_score": a.max_score,
                    "feedback": sub.feedback,
                    "status": sub.status.value,
                    "graded_at": sub.graded_at.isoformat() if sub.graded_at else None,
                })

        return rows
