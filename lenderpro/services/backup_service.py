"""Backup export and import for LenderPro.

A backup is a JSON document:

    {"meta": {"version": ..., "exported_at": ..., "app": ...},
     "data": {"clients": [...], "loans": [...]}}

Import also accepts a bare {"clients": [...], "loans": [...]} object. Every
record goes through the schema-validating deserializer once; records that
fail are reported, not repaired.
"""
import json
import logging
from datetime import datetime

from lenderpro.config import BACKUP_APP_NAME, BACKUP_VERSION
from lenderpro.data_structures import ImportReport
from lenderpro.exceptions import MalformedRecordError
from lenderpro.result import Result, ErrorType
from lenderpro.serialization import (
    client_from_dict,
    client_to_dict,
    loan_from_dict,
    loan_to_dict,
)

logger = logging.getLogger(__name__)


class BackupService:
    """Serializes the whole store to a backup document and back."""

    def __init__(self, db_manager):
        self.db = db_manager

    def export_data(self, indent=2) -> str:
        backup = {
            'meta': {
                'version': BACKUP_VERSION,
                'exported_at': datetime.now().isoformat(timespec="seconds"),
                'app': BACKUP_APP_NAME,
            },
            'data': {
                'clients': [client_to_dict(c) for c in self.db.get_clients()],
                'loans': [loan_to_dict(l) for l in self.db.get_loans()],
            },
        }
        return json.dumps(backup, indent=indent, ensure_ascii=False)

    def import_data(self, json_input) -> Result[ImportReport]:
        """Replace the store with the valid records of a backup.

        Args:
            json_input: Backup text or an already-parsed dict.

        Returns:
            Result holding an ImportReport that lists rejected records, or a
            VALIDATION failure when the document itself is unusable. Nothing
            is written when the result is a failure.
        """
        if not json_input:
            return Result.fail("No data provided for import", ErrorType.VALIDATION)

        if isinstance(json_input, (str, bytes)):
            try:
                backup = json.loads(json_input)
            except ValueError:
                return Result.fail("The file is corrupt or not valid JSON", ErrorType.VALIDATION)
        else:
            backup = json_input

        if not isinstance(backup, dict):
            return Result.fail("Invalid backup structure", ErrorType.VALIDATION)

        root = backup.get('data', backup)
        if not isinstance(root, dict):
            return Result.fail("Invalid backup structure", ErrorType.VALIDATION)

        raw_clients = root.get('clients') if isinstance(root.get('clients'), list) else []
        raw_loans = root.get('loans') if isinstance(root.get('loans'), list) else []
        if not raw_clients and not raw_loans:
            return Result.fail("The backup contains no clients or loans", ErrorType.VALIDATION)

        report = ImportReport()
        clients = self._parse_all(raw_clients, client_from_dict, report)
        loans = self._parse_all(raw_loans, loan_from_dict, report)

        if not clients and not loans:
            return Result.fail(f"No valid records in backup ({len(report.errors)} rejected)",
                               ErrorType.MALFORMED_RECORD)

        self.db.replace_all(clients, loans)
        report.clients_imported = len(clients)
        report.loans_imported = len(loans)

        logger.info("Imported %d clients and %d loans (%d rejected)",
                    report.clients_imported, report.loans_imported, len(report.errors))
        return Result.ok(report)

    @staticmethod
    def _parse_all(raw_records, parser, report):
        parsed = []
        for raw in raw_records:
            try:
                parsed.append(parser(raw))
            except MalformedRecordError as e:
                report.errors.append(str(e))
        return parsed
