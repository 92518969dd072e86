"""
Request-scoped access to the long-lived services created at startup.
"""
from starlette.requests import HTTPConnection

from groundcrew.services.business.task_state_machine import TaskStateMachine
from groundcrew.services.business.turnaround_service import TurnaroundService
from groundcrew.services.realtime.subscription_channel import SubscriptionChannel
from groundcrew.services.store.document_store import DocumentStore


def get_store(connection: HTTPConnection) -> DocumentStore:
    return connection.app.state.store


def get_channel(connection: HTTPConnection) -> SubscriptionChannel:
    return connection.app.state.channel


def get_state_machine(connection: HTTPConnection) -> TaskStateMachine:
    return TaskStateMachine(get_store(connection))


def get_turnaround_service(connection: HTTPConnection) -> TurnaroundService:
    return TurnaroundService(get_store(connection))
