"""
Chain - the client side of a harness-managed node.

Uses httpx + eth-account + eth-abi instead of the heavyweight web3.py.
"""
