from abc import ABC, abstractmethod

from walletsync.domain.event.entity import Event


class EventRepository(ABC):
    @abstractmethod
    async def record_event(self, event: Event) -> None:
        pass
