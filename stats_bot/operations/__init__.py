"""
Operations Layer

This package provides business logic operations that compose database methods
for multi-step workflows. Operations modules handle transactions, validation
and business rules while the cogs stay thin.

Architecture:
- Database layer: Pure data access
- Operations layer: Business logic composition and workflows
- Command layer: Discord integration and user interface

Each operations module focuses on a specific domain:
- PlayerOperations: Player identity reconciliation and orphan pruning
- AdminOperations: Tournament and game day lifecycle, deletions with reversal
- IngestionOperations: Match fetching, parsing and persistence
"""
