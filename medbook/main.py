import logging
from datetime import datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from medbook.core import config
from medbook.core.config import JwtSettings, MailSettings
from medbook.database import Base, engine, ensure_booking_schema
from medbook.models import appointment, appointment_type, availability_block, doctor, patient, slot, user  # noqa: F401
from medbook.notifications.dispatcher import NotificationDispatcher
from medbook.notifications.mailer import SmtpMailer
from medbook.routes import booking_routes

logging.basicConfig(level=config.LOG_LEVEL)

config.validate_runtime_config()

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)

app.state.jwt_settings = JwtSettings.from_env()

logger = logging.getLogger(__name__)


@app.on_event('startup')
def initialize_database() -> None:
    try:
        Base.metadata.create_all(bind=engine)
        ensure_booking_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.on_event('startup')
def start_notifications() -> None:
    mail_settings = MailSettings.from_env()
    app.state.dispatcher = NotificationDispatcher(
        SmtpMailer(mail_settings),
        max_workers=config.NOTIFICATION_WORKERS,
        enabled=mail_settings.enabled,
    )


@app.on_event('shutdown')
def stop_notifications() -> None:
    dispatcher = getattr(app.state, 'dispatcher', None)
    if dispatcher is not None:
        dispatcher.shutdown(wait=True)


@app.get('/health')
def health():
    return {'status': 'ok', 'timestamp': datetime.now().isoformat()}


app.include_router(booking_routes.router, prefix='/booking')
