"""Principals and helpers shared by the test modules."""

import asyncio

from splitledger.models.group import Principal


ALICE = Principal(id="alice", display_name="Alice", email="alice@example.com")
BOB = Principal(id="bob", display_name="Bob", email="Bob@Example.com")
CAROL = Principal(id="carol", display_name="Carol", email="carol@example.com")


def run(coro):
    """Drive a coroutine to completion from a plain test."""
    return asyncio.run(coro)
