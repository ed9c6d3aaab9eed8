"""
Theurgy - Command implementations for the pactum CLI.

Each module corresponds to a top-level CLI command:
- keygen:       Create the local signing key
- balance:      Show balances and staking balances of an address
- transfer:     Send an asset to another address
- stake:        Stake, unstake or claim stake
- sign_payload: Sign an arbitrary hash
"""
