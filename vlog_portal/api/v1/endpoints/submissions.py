# vlog_portal/api/v1/endpoints/submissions.py
import asyncio
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from vlog_portal.api.deps import (
    error_category,
    get_intake_pipeline,
    get_repository,
    repository_http_error,
)
from vlog_portal.core.config import settings
from vlog_portal.core.exceptions import InvalidVideoUrlError, RepositoryError
from vlog_portal.core.security import get_current_teacher
from vlog_portal.models.user import User
from vlog_portal.schemas.submission import (
    DeleteAllResult,
    GradeUpdate,
    RankingPublic,
    RankingStatsPublic,
    RosterPage,
    StudentDataUpdate,
    SubmissionAccepted,
    SubmissionForm,
    SubmissionRecord,
)
from vlog_portal.services import export_service, roster
from vlog_portal.services.intake_pipeline import IntakePipeline
from vlog_portal.services.submission_repository import SubmissionRepository

router = APIRouter(prefix="/submissions", tags=["submissions"])

DELETE_ALL_CONFIRMATION = "DELETE"


def _intake_error(pipeline: IntakePipeline, status_code: int, category: str, exc: Exception):
    # echo the form back so the student can fix it and resubmit
    return HTTPException(
        status_code=status_code,
        detail={
            "stage": pipeline.stage.value,
            "category": category,
            "message": str(exc),
            "form": pipeline.form.model_dump() if pipeline.form else None,
        },
    )


@router.get("/classes", response_model=List[str])
def list_class_options():
    """
    Class options for the submission form.
    """
    return settings.CLASS_OPTIONS


@router.post("/", response_model=SubmissionAccepted, status_code=status.HTTP_201_CREATED)
async def create_submission(
    form: SubmissionForm,
    pipeline: IntakePipeline = Depends(get_intake_pipeline),
):
    """
    学生提交 vlog: extract id -> title lookup -> AI feedback -> store.
    """
    stages: List[str] = []
    pipeline.on_stage_change(lambda stage: stages.append(stage.value))

    try:
        summary = await pipeline.submit(form)
    except InvalidVideoUrlError as exc:
        raise _intake_error(pipeline, status.HTTP_422_UNPROCESSABLE_ENTITY, "validation", exc)
    except RepositoryError as exc:
        status_code, category = error_category(exc)
        raise _intake_error(pipeline, status_code, category, exc)

    return SubmissionAccepted(
        id=summary.submission_id,
        student_name=summary.student_name,
        video_title=summary.video_title,
        ai_feedback=summary.ai_feedback,
        completed_at=summary.completed_at,
        stages=stages,
    )


@router.get("/", response_model=RosterPage, response_model_exclude_none=True)
async def list_submissions(
    search: str = "",
    class_label: str = roster.ALL_CLASSES,
    sort_by: roster.SortOption = "newest",
    repository: SubmissionRepository = Depends(get_repository),
    current_teacher: User = Depends(get_current_teacher),
):
    """
    老师查看所有提交, with search / class filter / sort.
    """
    try:
        records = await asyncio.to_thread(repository.fetch_all, current_teacher)
    except RepositoryError as exc:
        raise repository_http_error(exc)

    return RosterPage(
        total=len(records),
        classes=roster.unique_classes(records),
        submissions=roster.filter_and_sort(
            records, search=search, class_label=class_label, sort_by=sort_by
        ),
    )


@router.get("/rankings", response_model=RankingPublic, response_model_exclude_none=True)
async def class_rankings(
    class_label: str = roster.ALL_CLASSES,
    repository: SubmissionRepository = Depends(get_repository),
    current_teacher: User = Depends(get_current_teacher),
):
    try:
        records = await asyncio.to_thread(repository.fetch_all, current_teacher)
    except RepositoryError as exc:
        raise repository_http_error(exc)

    ranking = roster.rank(records, class_label=class_label)
    return RankingPublic(
        class_label=ranking.class_label,
        stats=RankingStatsPublic(
            avg=ranking.stats.avg, max=ranking.stats.max, min=ranking.stats.min
        ),
        ranked=ranking.entries,
    )


@router.get("/export.csv")
async def export_csv(
    repository: SubmissionRepository = Depends(get_repository),
    current_teacher: User = Depends(get_current_teacher),
):
    try:
        records = await asyncio.to_thread(repository.fetch_all, current_teacher)
    except RepositoryError as exc:
        raise repository_http_error(exc)

    filename = export_service.export_filename()
    return Response(
        content=export_service.build_csv(records),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.put(
    "/{submission_id}/grade",
    response_model=SubmissionRecord,
    response_model_exclude_none=True,
)
async def grade_submission(
    submission_id: str,
    grade_in: GradeUpdate,
    repository: SubmissionRepository = Depends(get_repository),
    current_teacher: User = Depends(get_current_teacher),
):
    """
    老师评分: writes score and teacher note only.
    """
    try:
        return await repository.update_grade(
            current_teacher, submission_id, grade_in.score, grade_in.teacher_feedback
        )
    except RepositoryError as exc:
        raise repository_http_error(exc)


@router.put(
    "/{submission_id}",
    response_model=SubmissionRecord,
    response_model_exclude_none=True,
)
async def edit_student_data(
    submission_id: str,
    obj_in: StudentDataUpdate,
    repository: SubmissionRepository = Depends(get_repository),
    current_teacher: User = Depends(get_current_teacher),
):
    try:
        return await repository.update_student_data(
            current_teacher,
            submission_id,
            obj_in.student_name,
            obj_in.class_label,
            obj_in.roll_number,
        )
    except RepositoryError as exc:
        raise repository_http_error(exc)


@router.delete("/{submission_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_submission(
    submission_id: str,
    repository: SubmissionRepository = Depends(get_repository),
    current_teacher: User = Depends(get_current_teacher),
):
    try:
        await repository.delete(current_teacher, submission_id)
    except RepositoryError as exc:
        raise repository_http_error(exc)
    return None


@router.delete("/", response_model=DeleteAllResult)
async def delete_all_submissions(
    confirm: str = Query("", description=f'Type "{DELETE_ALL_CONFIRMATION}" to confirm'),
    repository: SubmissionRepository = Depends(get_repository),
    current_teacher: User = Depends(get_current_teacher),
):
    """
    Bulk delete, all or nothing. Needs the typed confirmation word.
    """
    if confirm != DELETE_ALL_CONFIRMATION:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f'Confirmation failed: pass confirm="{DELETE_ALL_CONFIRMATION}" to delete everything',
        )
    try:
        deleted = await repository.delete_all(current_teacher)
    except RepositoryError as exc:
        raise repository_http_error(exc)
    return DeleteAllResult(deleted=deleted)
