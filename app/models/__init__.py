from app.models.user import User
from app.models.organization import Organization
from app.models.worker_profile import WorkerProfile
from app.models.restaurant_profile import RestaurantProfile
from app.models.promotion import Promotion
from app.models.claim import Claim, Redemption
from app.models.invite_token import InviteToken
from app.models.audit_log import AuditLog
from app.models.login_attempt import LoginAttempt
