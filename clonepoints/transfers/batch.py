"""Parsing of bulk SOL transfer lists pasted into the admin dashboard.

The transaction itself is built and signed by the admin's wallet in the
browser; the server only checks the list and converts amounts to lamports.
"""

import re
from decimal import Decimal, InvalidOperation
from typing import List, NamedTuple

from ..errors import ValidationError
from ..forms import WALLET_ADDRESS_RE

LAMPORTS_PER_SOL = 1_000_000_000

_address_re = re.compile(WALLET_ADDRESS_RE)


class Transfer(NamedTuple):
    recipient: str
    amount: Decimal
    lamports: int

    def to_dict(self):
        return {"recipient": self.recipient, "amount": str(self.amount), "lamports": self.lamports}


class TransferBatch(NamedTuple):
    transfers: List[Transfer]

    @property
    def total_lamports(self):
        return sum(t.lamports for t in self.transfers)

    def to_dict(self):
        return {
            "transfers": [t.to_dict() for t in self.transfers],
            "totalLamports": self.total_lamports,
            "count": len(self.transfers),
        }


def _to_lamports(amount: Decimal) -> int:
    lamports = amount * LAMPORTS_PER_SOL
    if lamports != lamports.to_integral_value():
        raise ValueError("more than 9 decimal places")
    return int(lamports)


def parse_transfer_batch(text: str, max_transfers: int = 500) -> TransferBatch:
    """Parses ``address,amount`` lines; blank lines are skipped."""
    transfers = []
    for lineno, raw in enumerate((text or "").splitlines(), start=1):
        line = raw.strip()
        if not line:
            continue
        address, sep, amount_s = line.partition(",")
        address, amount_s = address.strip(), amount_s.strip()
        if not sep or not address or not amount_s:
            raise ValidationError(f"Line {lineno}: invalid format: {line}")
        if not _address_re.match(address):
            raise ValidationError(f"Line {lineno}: invalid recipient address: {address}")
        try:
            amount = Decimal(amount_s)
        except InvalidOperation:
            raise ValidationError(f"Line {lineno}: invalid amount: {amount_s}")
        if not amount.is_finite() or amount <= 0:
            raise ValidationError(f"Line {lineno}: amount must be positive")
        try:
            lamports = _to_lamports(amount)
        except ValueError as e:
            raise ValidationError(f"Line {lineno}: {e}")
        transfers.append(Transfer(address, amount, lamports))

    if not transfers:
        raise ValidationError("No transfers given")
    if len(transfers) > max_transfers:
        raise ValidationError(f"Too many transfers ({len(transfers)} > {max_transfers})")
    return TransferBatch(transfers)
