"""
Subscription scopes.
A scope names a set of documents, knows which change events touch it and
how to load its full current state from the store.
"""
from dataclasses import dataclass, field
from typing import List, Optional, Union

from groundcrew.schemas.crew import CrewMember
from groundcrew.schemas.task import Task
from groundcrew.schemas.turnaround import Turnaround
from groundcrew.services.business.visibility import visible_turnarounds
from groundcrew.services.store.document_store import TASKS, TURNAROUNDS, ChangeEvent, DocumentStore

Document = Union[Task, Turnaround]


def document_id(document: Document) -> str:
    if isinstance(document, Task):
        return document.task_id
    return document.turnaround_id


@dataclass(frozen=True)
class TaskListScope:
    """The ordered checklist of one turnaround"""
    turnaround_id: str
    label: str = field(default="task_list", init=False)

    def affected_by(self, event: ChangeEvent) -> bool:
        return event.collection == TASKS and event.turnaround_id == self.turnaround_id

    async def load(self, store: DocumentStore) -> List[Task]:
        return await store.list_tasks(self.turnaround_id)


@dataclass(frozen=True)
class TurnaroundScope:
    """A single turnaround document"""
    turnaround_id: str
    label: str = field(default="turnaround", init=False)

    def affected_by(self, event: ChangeEvent) -> bool:
        return event.collection == TURNAROUNDS and event.document_id == self.turnaround_id

    async def load(self, store: DocumentStore) -> List[Turnaround]:
        # NotFoundError ends the subscription
        return [await store.get_turnaround(self.turnaround_id)]


@dataclass(frozen=True)
class VisibleTurnaroundsScope:
    """The turnarounds a user's dashboard may show"""
    user: CrewMember
    match_mode: Optional[str] = None
    label: str = field(default="visible_turnarounds", init=False)

    def affected_by(self, event: ChangeEvent) -> bool:
        return event.collection == TURNAROUNDS

    async def load(self, store: DocumentStore) -> List[Turnaround]:
        return visible_turnarounds(self.user, await store.list_turnarounds(), self.match_mode)


@dataclass(frozen=True)
class AllTurnaroundsScope:
    """Every turnaround; for system consumers such as the aggregator"""
    label: str = field(default="all_turnarounds", init=False)

    def affected_by(self, event: ChangeEvent) -> bool:
        return event.collection == TURNAROUNDS

    async def load(self, store: DocumentStore) -> List[Turnaround]:
        return await store.list_turnarounds()
