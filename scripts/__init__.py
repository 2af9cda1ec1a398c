"""Operator scripts for the inventory ledger."""
