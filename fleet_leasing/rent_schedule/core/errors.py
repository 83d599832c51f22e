"""
Rent schedule engine exceptions
"""


class RentScheduleError(Exception):
    """Base class for engine errors"""


class LeaseReadError(RentScheduleError):
    """The active-lease snapshot could not be read; the run cannot continue"""


class RunInProgressError(RentScheduleError):
    """Another run holds the engine lock"""


class InvalidLeaseError(RentScheduleError):
    """Lease row is unusable for scheduling (missing or bad start date)"""

    def __init__(self, lease_id, reason):
        super().__init__(f"Lease {lease_id}: {reason}")
        self.lease_id = lease_id
        self.reason = reason
