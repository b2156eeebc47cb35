from fastapi import Depends, Request

from stuwork.database import get_db
from stuwork.services.auth_service import AuthService
from stuwork.services.job_service import JobService
from stuwork.services.notification_service import NotificationService
from stuwork.services.realtime import RealtimeChannel
from stuwork.utils.email import Mailer


def get_channel(request: Request) -> RealtimeChannel:
    return request.app.state.channel


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer


def get_auth_service(mailer: Mailer = Depends(get_mailer)) -> AuthService:
    return AuthService(get_db(), mailer)


def get_notification_service(channel: RealtimeChannel = Depends(get_channel)) -> NotificationService:
    return NotificationService(get_db(), channel)


def get_job_service(
    channel: RealtimeChannel = Depends(get_channel),
    notifications: NotificationService = Depends(get_notification_service),
) -> JobService:
    return JobService(get_db(), notifications, channel)
