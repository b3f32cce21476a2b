import json
import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from arena import db
from arena.models import RoundHistory

logger = logging.getLogger(__name__)


def save_round_history(record: dict) -> Optional[RoundHistory]:
    """Persist the summary of a finished round.

    A failed write is rolled back and logged; the round has already ended
    and nothing upstream retries.
    """
    row = RoundHistory(
        id=record['id'],
        game_type=record['type'],
        start_time=record.get('start_time'),
        result=record['result'],
        winner_id=record.get('winner_id'),
        player_count=int(record.get('player_count') or 0),
        scores=json.dumps(record.get('scores') or {}),
    )
    try:
        db.session.add(row)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        logger.exception(f'[history-fail] round={row.id}')
        return None
    logger.info(f'[history-saved] round={row.id} result={row.result}')
    return row


def list_round_history(limit: int = 50) -> List[RoundHistory]:
    return (
        RoundHistory.query
        .order_by(RoundHistory.ended_at.desc())
        .limit(limit)
        .all()
    )
