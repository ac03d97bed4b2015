"""AI task queue backed by SQLite.

Tasks are persisted rows that move `pending -> running -> completed|failed`.
A `TaskQueueManager` polls the table, claims pending rows with a conditional
update, checks the monthly usage bucket, and runs the mode processor on a
thread pool. There is no separate broker: a task advances only while some
manager is polling.
"""
