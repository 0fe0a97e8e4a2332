"""Change data capture for the SQLite repositories."""

from collections.abc import Awaitable, Callable

from sqlmodel import SQLModel

from famchat.domain.entities.event import ChangeAction, ChangeEvent

ChangeSink = Callable[[ChangeEvent], Awaitable[None]]


class ChangeEmitter:
    """Mixin that forwards committed row changes to a sink.

    Records are dumped in JSON mode so locally captured changes look the same
    as changes delivered by the backend's webhooks.
    """

    _change_sink: ChangeSink | None = None

    async def _emit(self, table: str, action: ChangeAction, row: SQLModel) -> None:
        if self._change_sink is None:
            return
        await self._change_sink(
            ChangeEvent(table=table, action=action, record=row.model_dump(mode="json"))
        )
