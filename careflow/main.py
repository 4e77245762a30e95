import asyncio
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from careflow.core import config
from careflow.database import Base, engine, ensure_appointment_schema, ensure_reminder_schema
from careflow.models import appointment, doctor, hospital, reminder, user  # noqa: F401
from careflow.routes import appointment_routes, availability_routes, doctor_routes
from careflow.scheduling.reminders import run_dispatch_pass

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

logger = logging.getLogger(__name__)

_reminder_task: asyncio.Task | None = None


async def run_reminder_loop(poll_seconds: float) -> None:
    while True:
        try:
            summary = await asyncio.to_thread(run_dispatch_pass)
            if any(summary.values()):
                logger.info(f'Reminder dispatch pass: {summary}')
        except Exception:
            logger.exception('Reminder dispatch pass failed.')
        await asyncio.sleep(poll_seconds)


@app.on_event('startup')
async def initialize() -> None:
    global _reminder_task

    config.validate_runtime_config()

    try:
        Base.metadata.create_all(bind=engine)
        ensure_appointment_schema()
        ensure_reminder_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')

    if config.REMINDER_ENABLED:
        _reminder_task = asyncio.create_task(run_reminder_loop(config.REMINDER_POLL_SECONDS))


@app.on_event('shutdown')
async def stop_reminder_loop() -> None:
    if _reminder_task is not None:
        _reminder_task.cancel()


@app.get('/')
def root():
    return {'status': 'Scheduling API Running'}


app.include_router(availability_routes.router, prefix='/availability')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(doctor_routes.router, prefix='/doctors')
