"""Document trust pipeline: keys, certificates, signing and ledger anchoring."""
