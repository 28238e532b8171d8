"""
Address lookup table examples.

Each script is a standalone walkthrough that loads or generates a payer,
tops it up from the devnet faucet and runs one lookup table scenario.

Example Categories:

    **Why tables exist**:
    - legacy_transfer.py: 22 transfers in a legacy transaction, too large to send

    **Using tables**:
    - lookup_table_transfer.py: create, extend, wait a block, send v0 transfers
    - extend_in_batches.py: fill a table 30 addresses at a time

    **Cleaning up**:
    - close_lookup_table.py: deactivate, wait out the cooldown, close

    **Shared**:
    - common.py: configuration and ``initialize_keypair``

Quick Start:
    Run any example as a module from the repository root::

        python -m examples.legacy_transfer
        python -m examples.lookup_table_transfer

Configuration:
    See examples.common for the environment variables. The payer is stored
    as ``PRIVATE_KEY=[...]`` in ``.env`` on first run.
"""
