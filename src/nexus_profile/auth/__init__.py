"""Bearer credential verification and authorization guards."""
