from prometheus_client import Counter, Gauge, Histogram

# Запросы к серверу холста по ресурсам и исходу
# 'resource' - region, episode, season, quests, chat, place_pixel, ...
# 'status' - ok, rejected, transport_error
API_REQUESTS = Counter(
    'canvas_api_requests_total',
    'Total count of requests to the canvas server',
    ['resource', 'status']
)

# Время ответа API
API_RESPONSE_TIME = Histogram(
    'canvas_api_response_time_seconds',
    'Canvas API response time',
    ['api_endpoint', 'method']
)

# Общие ошибки по источникам (sync, placement, chat, session, export)
ERRORS_TOTAL = Counter(
    'canvas_errors_total',
    'Total count of errors by source',
    ['source']
)

# Ответы по региону, отброшенные из-за смены поколения вьюпорта
STALE_REGION_DISCARDS = Counter(
    'canvas_stale_region_discards_total',
    'Region responses dropped because the viewport changed while in flight'
)

# Циклы синхронизации, пропущенные потому что запрос ресурса еще в полете
SYNC_SKIPPED_IN_FLIGHT = Counter(
    'canvas_sync_skipped_in_flight_total',
    'Sync ticks skipped for a resource with an outstanding request',
    ['resource']
)

# Попытки поставить пиксель по исходу
# 'outcome' - placed, outside, cooling_down, rejected, failed, invalid
PLACEMENT_ATTEMPTS = Counter(
    'canvas_placement_attempts_total',
    'Pixel placement attempts by outcome',
    ['outcome']
)

# Оставшееся время кулдауна в секундах (0 - можно ставить)
COOLDOWN_REMAINING = Gauge(
    'canvas_cooldown_remaining_seconds',
    'Seconds until the next pixel can be placed'
)

# Состояние сессии: 1 - подключены, 0 - нет
SESSION_CONNECTED = Gauge(
    'canvas_session_connected',
    'Whether the canvas session is connected'
)

# Момент последнего применённого снимка региона (unix timestamp)
LAST_REGION_UPDATE_TS = Gauge(
    'canvas_last_region_update_timestamp',
    'Unix timestamp of last applied region payload'
)
