from weekly_ledger.ledger.week_ledger import StorageKeys, WeekLedger

__all__ = ["StorageKeys", "WeekLedger"]
