"""Transactional email functions for ARENNA bookings and feedback."""
