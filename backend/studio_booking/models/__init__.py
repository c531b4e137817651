from studio_booking.models.member import Member
from studio_booking.models.studio_class import StudioClass, ClassSchedule
from studio_booking.models.booking import ClassBooking, BookingStatus, Location

__all__ = ["Member", "StudioClass", "ClassSchedule", "ClassBooking", "BookingStatus", "Location"]
