from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from careflow.auth.dependencies import get_current_user, get_db
from careflow.core.errors import InvalidInput, SchedulingError, to_http_exception
from careflow.models.doctor import Weekday
from careflow.models.user import User
from careflow.routes.availability_routes import ensure_database_ready
from careflow.scheduling.schedules import ScheduleWindow, replace_work_schedule
from careflow.scheduling.slots import normalize_hhmm

router = APIRouter(tags=['doctors'])


class ScheduleWindowPayload(BaseModel):
    from_time: str = Field(alias='from')
    to_time: str = Field(alias='to')
    enabled: bool = True

    model_config = {'populate_by_name': True}

    @field_validator('from_time', 'to_time')
    @classmethod
    def validate_hhmm(cls, value: str) -> str:
        try:
            return normalize_hhmm(value)
        except InvalidInput as exc:
            raise ValueError(exc.message) from exc


class UpdateScheduleRequest(BaseModel):
    work_schedule: dict[Weekday, ScheduleWindowPayload]
    appointment_duration: int | None = Field(default=None, gt=0, le=24 * 60)


class ScheduleEntryResponse(BaseModel):
    weekday: Weekday
    from_time: str
    to_time: str
    enabled: bool

    class Config:
        from_attributes = True


class DoctorScheduleResponse(BaseModel):
    id: int
    specialty: str
    hospital_id: int | None = None
    appointment_duration: int
    is_available: bool
    work_schedule: list[ScheduleEntryResponse]

    class Config:
        from_attributes = True


@router.put('/{doctor_id}/schedule', response_model=DoctorScheduleResponse)
def update_doctor_schedule(
    doctor_id: int,
    data: UpdateScheduleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    windows = {
        weekday: ScheduleWindow(from_time=window.from_time, to_time=window.to_time, enabled=window.enabled)
        for weekday, window in data.work_schedule.items()
    }

    try:
        return replace_work_schedule(
            db,
            doctor_id,
            windows,
            current_user,
            appointment_duration=data.appointment_duration,
        )
    except SchedulingError as exc:
        db.rollback()
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail='Database unavailable. Verify DATABASE_URL and database credentials.',
        ) from exc
