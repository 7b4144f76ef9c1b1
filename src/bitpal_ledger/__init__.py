"""
Crypto Portfolio Ledger (bitpal-ledger)

Portfolio ledger and P&L engine for cryptocurrency holdings. Takes a stream of
buy/sell transactions per asset and derives open holdings with weighted-average
cost basis, unrealized gains, fully closed trading cycles with realized P&L,
and the partial gains already realized inside still-open positions.

Pure computation: storage, price fetching and display stay with the caller.
"""

__version__ = "0.1.0"
__author__ = "Bitpal Team"
