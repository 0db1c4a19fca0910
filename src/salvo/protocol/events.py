"""Names of the events exchanged between clients and the room coordinator."""

# client -> server
JOIN_GAME = "JOIN_GAME"
START_GAME = "START_GAME"
CLICK_SQUARE = "CLICK_SQUARE"

# server -> clients
GAME_READY = "GAME_READY"
GAME_STARTED = "GAME_STARTED"
UPDATE_GAME = "UPDATE_GAME"
GAME_OVER = "GAME_OVER"
PLAYER_LEAVE = "PLAYER_LEAVE"

CLIENT_EVENTS = (JOIN_GAME, START_GAME, CLICK_SQUARE)
SERVER_EVENTS = (GAME_READY, GAME_STARTED, UPDATE_GAME, GAME_OVER, PLAYER_LEAVE)
