"""Enrollment fulfillment after verified payment."""

from .service import EnrollmentFulfiller, FulfillmentError, FulfillmentResult


__all__ = ["EnrollmentFulfiller", "FulfillmentError", "FulfillmentResult"]
