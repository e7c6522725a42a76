"""Raw transaction control statements for dialects without native methods."""

BEGIN_TRANSACTION = "BEGIN; "
COMMIT_TRANSACTION = "COMMIT; "
ROLLBACK_TRANSACTION = "ROLLBACK; "
