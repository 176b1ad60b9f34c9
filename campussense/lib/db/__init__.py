"""Async database operations for the CampusSense application.

This package provides async database operations using aiosqlite for non-blocking
database access throughout the application.

See connection.py for details on connection patterns (persistent vs pooled).
"""

from campussense.lib.db.connection import ConnectionPool as ConnectionPool
from campussense.lib.db.connection import Database as Database
from campussense.lib.db.connection import close_db as close_db
from campussense.lib.db.connection import ensure_schema as ensure_schema
from campussense.lib.db.connection import get_db as get_db
from campussense.lib.db.connection import init_db as init_db
from campussense.lib.db.notifications import clamp_limit as clamp_limit
from campussense.lib.db.notifications import get_notifications as get_notifications
from campussense.lib.db.notifications import insert_alert_logs as insert_alert_logs
from campussense.lib.db.notifications import (
    insert_notification as insert_notification,
)
from campussense.lib.db.notifications import (
    mark_notification_read as mark_notification_read,
)
from campussense.lib.db.queries import GRAPH_RANGES as GRAPH_RANGES
from campussense.lib.db.queries import SENSOR_COLUMNS as SENSOR_COLUMNS
from campussense.lib.db.queries import get_latest_reading as get_latest_reading
from campussense.lib.db.queries import get_metric_history as get_metric_history
from campussense.lib.db.queries import insert_reading as insert_reading
from campussense.lib.db.settings import (
    clear_settings_cache as clear_settings_cache,
)
from campussense.lib.db.settings import get_all_settings as get_all_settings
from campussense.lib.db.settings import set_settings_batch as set_settings_batch
from campussense.lib.db.subscribers import (
    add_chat_subscriber as add_chat_subscriber,
)
from campussense.lib.db.subscribers import (
    add_push_subscription as add_push_subscription,
)
from campussense.lib.db.subscribers import (
    deactivate_chat_subscriber as deactivate_chat_subscriber,
)
from campussense.lib.db.subscribers import (
    get_active_chat_ids as get_active_chat_ids,
)
from campussense.lib.db.subscribers import (
    get_push_subscriptions as get_push_subscriptions,
)
from campussense.lib.db.subscribers import (
    remove_push_subscription as remove_push_subscription,
)
from campussense.lib.db.types import GraphPoint as GraphPoint
from campussense.lib.db.types import NotificationRow as NotificationRow
from campussense.lib.db.types import PushSubscriptionRow as PushSubscriptionRow
from campussense.lib.db.types import SensorRow as SensorRow
from campussense.lib.db.types import SQLParams as SQLParams
