'''
API endpoints for managing student workspaces: subjects, prepayments,
lessons and the derived history, statistics and calendar.
'''
from typing import Annotated, Any
from uuid import UUID
from datetime import date
from fastapi import APIRouter, Depends, status, Query

from ..models import schedule as schedule_models
from ..models import lessons as lesson_models
from ..models import finance as finance_models
from ..models import student as student_models
from ..models import calendar as calendar_models
from ..services.student_service import StudentService

class StudentsAPI:
    """
    A class to encapsulate all endpoints related to student workspaces.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/students",
            tags=["Students"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        # Students
        self.router.add_api_route(
                "/",
                self.list_students,
                methods=["GET"],
                response_model=list[student_models.StudentSummary])
        self.router.add_api_route(
                "/",
                self.create_student,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=student_models.StudentRead)
        self.router.add_api_route(
                "/{student_id}",
                self.get_student,
                methods=["GET"],
                response_model=student_models.StudentRead)
        self.router.add_api_route(
                "/{student_id}",
                self.delete_student,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)
        self.router.add_api_route(
                "/{student_id}/recalculate",
                self.recalculate,
                methods=["POST"],
                response_model=student_models.StudentRead)

        # Subjects
        self.router.add_api_route(
                "/{student_id}/subjects",
                self.add_subject,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=schedule_models.Subject)
        self.router.add_api_route(
                "/{student_id}/subjects/{subject_id}",
                self.update_subject,
                methods=["PUT"],
                response_model=schedule_models.Subject)
        self.router.add_api_route(
                "/{student_id}/subjects/{subject_id}",
                self.remove_subject,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        # Prepayments
        self.router.add_api_route(
                "/{student_id}/prepayments",
                self.add_prepayment,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=lesson_models.Prepayment)
        self.router.add_api_route(
                "/{student_id}/prepayments/{prepayment_id}",
                self.update_prepayment,
                methods=["PUT"],
                response_model=lesson_models.Prepayment)
        self.router.add_api_route(
                "/{student_id}/prepayments/{prepayment_id}",
                self.remove_prepayment,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        # Lessons
        self.router.add_api_route(
                "/{student_id}/lessons",
                self.add_lesson,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=lesson_models.Lesson)
        self.router.add_api_route(
                "/{student_id}/lessons/{lesson_id}",
                self.update_lesson,
                methods=["PUT"],
                response_model=lesson_models.Lesson)
        self.router.add_api_route(
                "/{student_id}/lessons/{lesson_id}/cancel",
                self.cancel_lesson,
                methods=["PATCH"],
                response_model=lesson_models.Lesson)
        self.router.add_api_route(
                "/{student_id}/lessons/{lesson_id}",
                self.remove_lesson,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        # Read models
        self.router.add_api_route(
                "/{student_id}/history",
                self.get_history,
                methods=["GET"],
                response_model=list[calendar_models.HistoryEntry])
        self.router.add_api_route(
                "/{student_id}/stats",
                self.get_stats,
                methods=["GET"],
                response_model=finance_models.Stats)
        self.router.add_api_route(
                "/{student_id}/stats/{subject_name}",
                self.get_subject_stats,
                methods=["GET"],
                response_model=finance_models.Stats)
        self.router.add_api_route(
                "/{student_id}/calendar",
                self.get_calendar,
                methods=["GET"],
                response_model=calendar_models.CalendarRead)

    # --- Students ---

    async def list_students(
        self,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> list[Any]:
        return await student_service.list_students()

    async def create_student(
        self,
        student_data: student_models.StudentCreate,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.create_student(student_data)

    async def get_student(
        self,
        student_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        """
        Retrieves a student's snapshot. The history and stats may lag behind
        recent schedule edits while `recalculation_pending` is true.
        """
        return await student_service.get_student(student_id)

    async def delete_student(
        self,
        student_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        await student_service.delete_student(student_id)

    async def recalculate(
        self,
        student_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        """
        Rebuilds the student's ledger immediately, superseding any pending debounced run.
        """
        return await student_service.recalculate(student_id)

    # --- Subjects ---

    async def add_subject(
        self,
        student_id: UUID,
        subject_data: schedule_models.SubjectCreate,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.add_subject(student_id, subject_data)

    async def update_subject(
        self,
        student_id: UUID,
        subject_id: UUID,
        subject_data: schedule_models.SubjectCreate,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.update_subject(student_id, subject_id, subject_data)

    async def remove_subject(
        self,
        student_id: UUID,
        subject_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        await student_service.remove_subject(student_id, subject_id)

    # --- Prepayments ---

    async def add_prepayment(
        self,
        student_id: UUID,
        prepayment_data: lesson_models.PrepaymentCreate,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.add_prepayment(student_id, prepayment_data)

    async def update_prepayment(
        self,
        student_id: UUID,
        prepayment_id: UUID,
        prepayment_data: lesson_models.PrepaymentCreate,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.update_prepayment(student_id, prepayment_id, prepayment_data)

    async def remove_prepayment(
        self,
        student_id: UUID,
        prepayment_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        await student_service.remove_prepayment(student_id, prepayment_id)

    # --- Lessons ---

    async def add_lesson(
        self,
        student_id: UUID,
        lesson_data: lesson_models.LessonCreate,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        """
        Adds a manual lesson. Returns 409 if the slot overlaps another lesson that day.
        """
        return await student_service.add_lesson(student_id, lesson_data)

    async def update_lesson(
        self,
        student_id: UUID,
        lesson_id: UUID,
        lesson_data: lesson_models.LessonCreate,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        """
        Moves or re-prices a lesson. Returns 409 if the new slot overlaps another lesson that day.
        """
        return await student_service.update_lesson(student_id, lesson_id, lesson_data)

    async def cancel_lesson(
        self,
        student_id: UUID,
        lesson_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.cancel_lesson(student_id, lesson_id)

    async def remove_lesson(
        self,
        student_id: UUID,
        lesson_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ):
        await student_service.remove_lesson(student_id, lesson_id)

    # --- Read models ---

    async def get_history(
        self,
        student_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> list[Any]:
        return await student_service.get_history(student_id)

    async def get_stats(
        self,
        student_id: UUID,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.get_stats(student_id)

    async def get_subject_stats(
        self,
        student_id: UUID,
        subject_name: str,
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.get_subject_stats(student_id, subject_name)

    async def get_calendar(
        self,
        student_id: UUID,
        start: Annotated[date, Query(description="First day of the range (inclusive)")],
        end: Annotated[date, Query(description="Last day of the range (inclusive)")],
        student_service: Annotated[StudentService, Depends(StudentService)]
    ) -> Any:
        return await student_service.get_calendar(student_id, start, end)

# Instantiate the class and export its router
students_api = StudentsAPI()
router = students_api.router
