"""Canonical dict form of clients and loans.

Records are validated once, here, at the storage boundary: a deserializer
either returns a well-typed object or raises MalformedRecordError naming the
offending field. Nothing downstream re-checks or patches fields.
"""
from datetime import datetime
from typing import Any, Dict

from lenderpro.config import AMOUNT_TOLERANCE, DATE_FORMAT_STORAGE
from lenderpro.data_structures import (
    AmortizationMethod,
    Client,
    Frequency,
    Installment,
    InstallmentStatus,
    InterestMode,
    Loan,
    LoanStatus,
)
from lenderpro.exceptions import MalformedRecordError


def installment_to_dict(inst: Installment) -> Dict[str, Any]:
    data = {
        'number': inst.number,
        'due_date': inst.due_date,
        'total_amount': inst.total_amount,
        'capital_portion': inst.capital_portion,
        'interest_portion': inst.interest_portion,
        'status': inst.status.value,
    }
    if inst.payment_date:
        data['payment_date'] = inst.payment_date
    return data


def loan_to_dict(loan: Loan) -> Dict[str, Any]:
    return {
        'id': loan.id,
        'client_id': loan.client_id,
        'principal': loan.principal,
        'rate_or_amount': loan.rate_or_amount,
        'interest_mode': loan.interest_mode.value,
        'frequency': loan.frequency.value,
        'duration': loan.duration,
        'method': loan.method.value,
        'start_date': loan.start_date,
        'end_date': loan.end_date,
        'installments': [installment_to_dict(i) for i in loan.installments],
        'status': loan.status.value,
        'total_payable': loan.total_payable,
        'total_paid': loan.total_paid,
        # JSON object keys are strings
        'rate_overrides': {str(k): v for k, v in sorted(loan.rate_overrides.items())},
    }


def client_to_dict(client: Client) -> Dict[str, Any]:
    return {
        'id': client.id,
        'name': client.name,
        'dni': client.dni,
        'phone': client.phone,
        'address': client.address,
        'created_at': client.created_at,
    }


class _RecordReader:
    """Typed field access over a raw record, raising on the first bad field."""

    def __init__(self, kind, raw):
        if not isinstance(raw, dict):
            raise MalformedRecordError(kind, '<record>', f"must be an object, got {type(raw).__name__}")
        self.kind = kind
        self.raw = raw
        self.record_id = str(raw['id']) if raw.get('id') not in (None, '') else None

    def _error(self, field, reason):
        return MalformedRecordError(self.kind, field, reason, self.record_id)

    def require(self, field):
        if field not in self.raw or self.raw[field] is None:
            raise self._error(field, "is missing")
        return self.raw[field]

    def text(self, field, default=None, allow_empty=False):
        if default is not None and self.raw.get(field) is None:
            return default
        value = self.require(field)
        if not isinstance(value, str):
            raise self._error(field, f"must be text, got {type(value).__name__}")
        if not allow_empty and not value.strip():
            raise self._error(field, "must not be empty")
        return value

    def number(self, field, minimum=None):
        value = self.require(field)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise self._error(field, f"must be a number, got {value!r}")
        if minimum is not None and value < minimum:
            raise self._error(field, f"must be >= {minimum}, got {value}")
        return float(value)

    def integer(self, field, minimum=None):
        value = self.number(field, minimum)
        if value != int(value):
            raise self._error(field, f"must be a whole number, got {value}")
        return int(value)

    def date(self, field):
        value = self.text(field)
        try:
            datetime.strptime(value, DATE_FORMAT_STORAGE)
        except ValueError:
            raise self._error(field, f"must be a YYYY-MM-DD date, got {value!r}")
        return value

    def choice(self, field, enum_cls):
        value = self.require(field)
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(m.value for m in enum_cls)
            raise self._error(field, f"must be one of [{allowed}], got {value!r}")

    def mapping(self, field):
        value = self.raw.get(field)
        if value is None:
            return {}
        if not isinstance(value, dict):
            raise self._error(field, "must be an object")
        return value

    def sequence(self, field):
        value = self.require(field)
        if not isinstance(value, list):
            raise self._error(field, "must be a list")
        return value


def client_from_dict(raw: Dict[str, Any]) -> Client:
    reader = _RecordReader('client', raw)
    return Client(
        id=reader.text('id'),
        name=reader.text('name'),
        dni=reader.text('dni', default='', allow_empty=True),
        phone=reader.text('phone', default='', allow_empty=True),
        address=reader.text('address', default='', allow_empty=True),
        created_at=reader.text('created_at', default='', allow_empty=True),
    )


def installment_from_dict(raw: Dict[str, Any], loan_id: str = None) -> Installment:
    reader = _RecordReader('installment', raw)
    reader.record_id = loan_id
    status = reader.choice('status', InstallmentStatus)
    if status == InstallmentStatus.LATE:
        raise reader._error('status', "'late' is derived and cannot be stored")

    payment_date = raw.get('payment_date')
    if payment_date is not None and not isinstance(payment_date, str):
        raise reader._error('payment_date', "must be text")

    return Installment(
        number=reader.integer('number', minimum=1),
        due_date=reader.date('due_date'),
        total_amount=reader.number('total_amount'),
        capital_portion=reader.number('capital_portion'),
        interest_portion=reader.number('interest_portion'),
        status=status,
        payment_date=payment_date or None,
    )


def loan_from_dict(raw: Dict[str, Any]) -> Loan:
    """Build a Loan from its canonical dict, validating every field.

    The ledger fields (duration, end date and both totals) must agree with
    the installment list; a disagreeing record is rejected, not repaired.

    Raises:
        MalformedRecordError: On the first field that does not validate.
    """
    reader = _RecordReader('loan', raw)
    loan_id = reader.text('id')
    duration = reader.integer('duration', minimum=1)

    installments = [installment_from_dict(i, loan_id) for i in reader.sequence('installments')]
    numbers = [i.number for i in installments]
    if numbers != list(range(1, len(installments) + 1)):
        raise MalformedRecordError('loan', 'installments', "numbers must run 1..N in order", loan_id)

    overrides = {}
    for key, value in reader.mapping('rate_overrides').items():
        try:
            number = int(key)
        except (TypeError, ValueError):
            raise MalformedRecordError('loan', 'rate_overrides', f"key {key!r} is not an installment number", loan_id)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedRecordError('loan', 'rate_overrides', f"value for {key!r} must be a number", loan_id)
        overrides[number] = float(value)

    loan = Loan(
        id=loan_id,
        client_id=reader.text('client_id', allow_empty=True),
        principal=reader.number('principal'),
        rate_or_amount=reader.number('rate_or_amount'),
        interest_mode=reader.choice('interest_mode', InterestMode),
        frequency=reader.choice('frequency', Frequency),
        duration=duration,
        method=reader.choice('method', AmortizationMethod),
        start_date=reader.date('start_date'),
        end_date=reader.date('end_date'),
        installments=installments,
        status=reader.choice('status', LoanStatus),
        total_payable=reader.number('total_payable'),
        total_paid=reader.number('total_paid'),
        rate_overrides=overrides,
    )
    _check_ledger(loan)
    return loan


def _check_ledger(loan: Loan):
    if loan.duration != len(loan.installments):
        raise MalformedRecordError('loan', 'duration', f"is {loan.duration} but the schedule has "
                                   f"{len(loan.installments)} installments", loan.id)
    if loan.end_date != loan.installments[-1].due_date:
        raise MalformedRecordError('loan', 'end_date', f"{loan.end_date} is not the last due date "
                                   f"{loan.installments[-1].due_date}", loan.id)

    payable = sum(inst.total_amount for inst in loan.installments)
    paid = sum(inst.total_amount for inst in loan.installments if inst.is_paid)
    if abs(loan.total_payable - payable) > AMOUNT_TOLERANCE:
        raise MalformedRecordError('loan', 'total_payable', f"{loan.total_payable} does not match "
                                   f"the installment sum {payable}", loan.id)
    if abs(loan.total_paid - paid) > AMOUNT_TOLERANCE:
        raise MalformedRecordError('loan', 'total_paid', f"{loan.total_paid} does not match "
                                   f"the paid installment sum {paid}", loan.id)
