"""
Ledger - amounts, guards and the operation lifecycle.

Assets and amounts, balance checks, the operation state machine with its
variants (transfer, trade, staking, contract invocation, payload signature)
and the address facades that drive them.
"""
