"""Mutation journal service.

Records every place mutation the admin pipeline applies, together with
whether the backend confirmed it. Degraded entries are the ones an operator
may need to re-enter once the backend is reachable again.
"""

import json
from typing import Any, Optional, Dict, List

from database import MutationLog, SessionLocal


class MutationJournal:
    """Service for recording and querying place mutations."""

    entity_type = "place"

    @staticmethod
    def record(
        user: str,
        entity_id: Any,
        action: str,
        outcome: str,
        before_value: Optional[Dict[str, Any]] = None,
        after_value: Optional[Dict[str, Any]] = None,
        description: Optional[str] = None,
    ) -> int:
        """Record one applied mutation.

        Args:
            user: Operator that issued the mutation.
            entity_id: ID of the place.
            action: create, update or delete.
            outcome: synced or degraded.
            before_value: Place data before the change.
            after_value: Place data after the change.
            description: Optional human-readable description.

        Returns:
            ID of the new journal entry.
        """
        db = SessionLocal()
        try:
            log_entry = MutationLog(
                user=user,
                entity_type=MutationJournal.entity_type,
                entity_id=str(entity_id),
                action=action,
                outcome=outcome,
                before_value=json.dumps(before_value, ensure_ascii=False)
                if before_value is not None
                else None,
                after_value=json.dumps(after_value, ensure_ascii=False)
                if after_value is not None
                else None,
                description=description
                or f"{action.capitalize()} place {entity_id} ({outcome})",
            )
            db.add(log_entry)
            db.commit()
            return log_entry.id
        finally:
            db.close()

    @staticmethod
    def get_logs(
        entity_id: Optional[Any] = None,
        outcome: Optional[str] = None,
        user: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve journal entries with optional filtering, newest first.

        Args:
            entity_id: Filter by place ID.
            outcome: Filter by outcome (synced / degraded).
            user: Filter by user.
            limit: Maximum number of entries to return.
            offset: Number of entries to skip.

        Returns:
            List of journal entries as dictionaries.
        """
        db = SessionLocal()
        try:
            query = db.query(MutationLog)

            if entity_id is not None:
                query = query.filter(MutationLog.entity_id == str(entity_id))
            if outcome:
                query = query.filter(MutationLog.outcome == outcome)
            if user:
                query = query.filter(MutationLog.user == user)

            query = query.order_by(MutationLog.timestamp.desc(), MutationLog.id.desc())
            query = query.offset(offset).limit(limit)

            return [log.to_dict() for log in query.all()]
        finally:
            db.close()

    @staticmethod
    def export_logs_csv(outcome: Optional[str] = None) -> str:
        """Export journal entries as CSV format.

        Args:
            outcome: Filter by outcome.

        Returns:
            CSV formatted string of journal entries.
        """
        import csv
        import io

        logs = MutationJournal.get_logs(outcome=outcome, limit=10000)

        output = io.StringIO()
        writer = csv.DictWriter(
            output,
            fieldnames=[column.name for column in MutationLog.__table__.columns],
        )

        writer.writeheader()
        for log in logs:
            writer.writerow(log)

        return output.getvalue()
