class BookingError(Exception):
    """Base for every outcome of the booking core that is not a success."""

    default_message = "Could not complete the request"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class SlotTaken(BookingError):
    # lost the race for a slot, or the interval overlaps another reservation at commit time
    default_message = "This time was just booked. Please pick another slot."


class NotFound(BookingError):
    default_message = "Reservation not found"


class OutOfPolicy(BookingError):
    # outside working hours, inside a vacation, or otherwise not bookable
    default_message = "The selected time is outside working hours"


class TransientStoreFailure(BookingError):
    default_message = "Something went wrong, please try again"
