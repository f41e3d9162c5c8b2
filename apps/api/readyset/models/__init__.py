# Import SQLAlchemy models so they register on Base.metadata
from readyset.models.address import Address, UserAddress  # noqa: F401
from readyset.models.delivery import Delivery, DeliveryStatus, DriverStatus  # noqa: F401
from readyset.models.dispatch import CateringRequest, Dispatch, OnDemandRequest  # noqa: F401
from readyset.models.driver import Driver, DriverLocation, DriverShift  # noqa: F401
from readyset.models.profile import Profile, UserType  # noqa: F401
