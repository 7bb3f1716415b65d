"""Business services built on the document store and the reconciliation core."""
