"""Deal-sourcing CRM: deal pipeline, contacts, activity log, market intelligence
and per-deal scenario return modeling (IRR, MOIC, cash-on-cash)."""
