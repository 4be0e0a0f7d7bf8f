"""
Read access to the evaluation table.

Used for the post-cycle summary and by operators inspecting what the
evaluator will see next.
"""

from sqlalchemy import text

from .clients.datastore import DataStore
from .models.event import EvaluationRow, EventKey
from .schema import EVALUATION_TABLE

_EVALUATION_COLUMNS = (
    'eid, num_1, ad_ts, ag_id, tycod, sub_tycod, udts, xdts, estnum, edirpre, '
    'efeanme, efeatyp, xstreet1, xstreet2, esz, comments, unit_count'
)


class EvaluationRepository:
    """Queries over jc_hc_curent."""

    def __init__(self, store: DataStore):
        self.store = store

    def count(self) -> int:
        with self.store.engine.connect() as conn:
            return conn.execute(text(f'SELECT COUNT(*) FROM {EVALUATION_TABLE}')).scalar_one()

    def list_rows(self) -> list[EvaluationRow]:
        """All evaluation rows ordered by creation time then key."""
        sql = text(f'SELECT {_EVALUATION_COLUMNS} FROM {EVALUATION_TABLE} ORDER BY ad_ts, eid, num_1')
        with self.store.engine.connect() as conn:
            return [EvaluationRow(**row) for row in conn.execute(sql).mappings()]

    def get(self, key: EventKey) -> EvaluationRow | None:
        sql = text(
            f'SELECT {_EVALUATION_COLUMNS} FROM {EVALUATION_TABLE} '
            'WHERE eid = :eid AND num_1 = :num_1 AND ad_ts = :ad_ts'
        )
        with self.store.engine.connect() as conn:
            row = conn.execute(sql, key.model_dump()).mappings().first()
        return EvaluationRow(**row) if row else None
