from tunebox.models.user import User
from tunebox.models.track import Track
from tunebox.models.setting import Setting
from tunebox.models.payment import Payment, PaymentStatus, PaymentType
from tunebox.models.purchase import Purchase
from tunebox.models.subscription import Subscription
from tunebox.models.daily_play_limit import DailyPlayLimit
from tunebox.models.play_history import PlayHistory
