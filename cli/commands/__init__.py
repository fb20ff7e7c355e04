"""
MintGate CLI command modules.
"""
