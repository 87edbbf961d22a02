from .user.user import User
from .trips.trip_model import Trip
from .trips.trip_participant import TripParticipant
from .activities.activity import Activity, ActivityCategory, ActivityStatus
from .activities.activity_vote import ActivityVote
