"""Scenario modeling: assumptions, the returns engine and interactive drafts.

- assumptions.py: DealFinancials / ScenarioAssumptions and input guardrails
- engine.py: compute_scenario, the pure returns calculation
- draft.py: exit-multiple defaulting for live editing sessions
"""
