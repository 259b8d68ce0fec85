# Per-contributor history entries kept in progress metadata
CONTRIBUTION_HISTORY_LIMIT = 50

# Read/calculate/write attempts per (team, tile, requirement key)
MAX_WRITE_ATTEMPTS = 3

# Event ids remembered on each progress row so a redelivered event that was
# already folded into the row is not counted twice
APPLIED_EVENT_IDS_LIMIT = 100

# Days a claimed event id stays in the processed_events ledger
LEDGER_RETENTION_DAYS = 14

WOM_API_BASE = 'https://api.wiseoldman.net/v2'
WOM_TIMEOUT_SECONDS = 10.0
WOM_SNAPSHOT_LIMIT = 100
WOM_USER_AGENT = 'clan-bingo-progress'

SKILLS = (
    'overall',
    'attack',
    'defence',
    'strength',
    'hitpoints',
    'ranged',
    'prayer',
    'magic',
    'cooking',
    'woodcutting',
    'fletching',
    'fishing',
    'firemaking',
    'crafting',
    'smithing',
    'mining',
    'herblore',
    'agility',
    'thieving',
    'slayer',
    'farming',
    'runecraft',
    'hunter',
    'construction',
)

# Dink chat message types a CHAT requirement may listen to
ALLOWED_CHAT_SOURCES = (
    'GAMEMESSAGE',
    'BROADCAST',
    'CLAN_MESSAGE',
    'CLAN_GIM_MESSAGE',
    'SPAM',
    'ENGINE',
)

EMBED_COLOR_TILE = 0x2ECC71
EMBED_COLOR_TIER = 0xF1C40F
