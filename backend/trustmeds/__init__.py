"""TrustMeds inventory ledger backend."""
