"""
Tree service RPC transport.

Redis-backed request/response server exposing the tree engine commands.
"""
