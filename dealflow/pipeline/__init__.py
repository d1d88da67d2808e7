"""Pipeline analytics: dashboard counts and deal comparison metrics."""
