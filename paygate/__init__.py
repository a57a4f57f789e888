"""paygate: ledger-verified micropayment gate for premium features."""
