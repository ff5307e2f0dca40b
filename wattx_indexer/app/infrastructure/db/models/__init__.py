from wattx_indexer.app.infrastructure.db.models.chain.blocks import BlocksDB
from wattx_indexer.app.infrastructure.db.models.chain.event_logs import EventLogsDB
from wattx_indexer.app.infrastructure.db.models.chain.transactions import TransactionsDB
from wattx_indexer.app.infrastructure.db.models.domain.token_balances import TokenBalancesDB
from wattx_indexer.app.infrastructure.db.models.domain.token_transfers import TokenTransfersDB
from wattx_indexer.app.infrastructure.db.models.domain.tokens import TokensDB
from wattx_indexer.app.infrastructure.db.models.domain.verified_contracts import VerifiedContractsDB
from wattx_indexer.app.infrastructure.db.models.indexer_state import IndexerStateDB

__all__ = [
    "BlocksDB",
    "EventLogsDB",
    "IndexerStateDB",
    "TokenBalancesDB",
    "TokenTransfersDB",
    "TokensDB",
    "TransactionsDB",
    "VerifiedContractsDB",
]
