# asset_ledger/utils/dependencies.py

from fastapi import Request

from asset_ledger.services.ledger.entry_id_issuer import EntryIdIssuer


def get_issuer(request: Request) -> EntryIdIssuer:
    return request.app.state.issuer
