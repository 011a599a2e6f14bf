"""
resourcegraph CLI.
"""
