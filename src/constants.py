import re


class SessionId:
    PREFIX = "sess_"
    PATTERN = re.compile(r"^sess_[a-f0-9]{8}$")


class LayerId:
    PREFIX = "layer_"


class TTL:
    SESSION = 60 * 60 * 2  # 2시간


class RedisPrefix:
    SESSION = "session"


class Units:
    NORMALIZED_SCALE = 1000  # detector 박스 좌표 / font_size 단위
    PERCENT_SCALE = 100  # 레이어 위치 단위
    FONT_SIZE_RATIO = 0.8  # 박스 높이 → font_size


class LayerDefaults:
    TEXT = "New Text"
    X = 40.0
    Y = 45.0
    FONT_SIZE = 50
    COLOR = "#000000"
    BACKGROUND_COLOR = "transparent"
    FONT_FAMILY = "Inter"
    FONT_WEIGHT = 600
    PADDING = 4


FALLBACK_CAPTIONS = ["Inspire", "Create", "Design"]
MAX_CAPTIONS = 3
