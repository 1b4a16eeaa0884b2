"""
Library Desk

Seat, student and fee bookkeeping for a self-study library: registrations,
seat assignment, fee payments with WhatsApp confirmations, an activity
feed and dashboard reports, persisted per library owner.
"""

__version__ = "0.1.0"
