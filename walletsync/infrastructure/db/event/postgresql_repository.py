import json
import time

from walletsync.domain.event.entity import Event
from walletsync.domain.event.repository import EventRepository
from walletsync.shared.monitoring.logging import LoggerMixin
from walletsync.shared.monitoring.metrics import record_database_operation


class PostgreSQLEventRepository(EventRepository, LoggerMixin):
    def __init__(self, pool):
        self._pool = pool

    async def record_event(self, event: Event) -> None:
        start_time = time.time()

        try:
            async with self._pool.acquire() as conn:
                await conn.execute(
                    "INSERT INTO events(id, type, module, description, profile_id, metadata, created_at) "
                    "VALUES($1, $2, $3, $4, $5, $6::jsonb, $7)",
                    event.id,
                    event.type,
                    event.module,
                    event.description,
                    event.profile_id,
                    json.dumps(event.metadata),
                    event.created_at,
                )

            duration = time.time() - start_time
            self.logger.info(f"Event recorded - Type: {event.type}, Profile: {event.profile_id}")
            record_database_operation("record_event", "events", "success", duration)

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(f"Failed to record event - Type: {event.type}, Error: {str(e)}")
            record_database_operation("record_event", "events", "error", duration)
            raise
