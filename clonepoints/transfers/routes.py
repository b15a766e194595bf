from flask import jsonify
from flask_login import login_required, current_user

from . import transfers
from .batch import parse_transfer_batch, LAMPORTS_PER_SOL
from ..forms import TransferBatchForm
from ..utils import activity_log, client_ip


@transfers.route('/prepare', methods=['POST'])
@login_required
def prepare():
    form = TransferBatchForm().validated()
    batch = parse_transfer_batch(form.recipients.data)
    activity_log().record(
        current_user.id,
        "bulk_transfer_prepared",
        client_ip(),
        f"{len(batch.transfers)} transfers, {batch.total_lamports / LAMPORTS_PER_SOL} SOL total",
    )
    return jsonify(batch.to_dict())
