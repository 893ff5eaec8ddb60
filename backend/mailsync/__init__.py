"""Mailbox ingestion pipeline for court booking alerts.

Scans the mailbox, classifies and parses booking emails, reconciles them
against the stored ledger and pushes notifications for new bookings.
"""
