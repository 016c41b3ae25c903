from .common import CamelModel, DataSource, ErrorResponse
from .user import User, UserSummary
from .points import AwardPointsRequest, AwardPointsResponse, AwardStatus
from .leaderboard import LeaderboardPeriod, LeaderboardResponse
from .og import OGProgressResponse, TradeVolumeUpdateResult
