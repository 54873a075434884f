"""User-facing texts of the sea battle game."""
from __future__ import annotations

YOUR_FLEET = "Your fleet"
WAITING_FOR_OPPONENT = "Waiting for another player..."
OPPONENT_JOINED = "User {name} joined the game.\nYour move."
JOINED_ACTIVE_CAPTION = "Player {name} joined the game. Their fleet"
JOINED_PASSIVE_CAPTION = "You joined the game, your opponent is {name}. Waiting for their move"
ACTIVE_CAPTION = "Fleet of player {name}"
PASSIVE_CAPTION = "Your fleet. Waiting for the move of player {name}"
FINAL_CAPTION = "Fleet of player {name}"

ALREADY_WAITING = "You are already waiting for an opponent!"
ALREADY_PLAYING = "You already have a game in progress!"
PLACEMENT_FAILED = "Could not set up the fleet, please try /start_session again."

SELF_MISS = "No hit."
ENEMY_MISS = "Luckily, player {name} missed.\nYour turn."
SELF_HIT = "Well done, {name}. Hit!"
SELF_SUNK = "Well done, {name}. Ship sunk!"
ENEMY_HIT = "Player {name} hit your ship!"
ENEMY_SUNK = "Player {name} sank your ship!"
STREAK = " Keep it up, {streak} hits in a row!"
FIRE_AGAIN = " You can fire again."

VICTORY_SELF = "Congratulations on the victory, {name}! The fleet of player {enemy} is destroyed!"
VICTORY_ENEMY = "Unfortunately, player {name} destroyed your fleet. Defeat."

REMINDER_ACTIVE = "{name} is waiting for your move, hurry up or the game ends in {seconds} seconds"
REMINDER_PASSIVE = "Wait for the move of player {name}. They have {seconds} seconds left"
SURRENDER_LOSER = "Unfortunately, you surrendered and lost! Player {name} wins"
SURRENDER_WINNER = "Congratulations, player {name} surrendered, so you win!"

LEADERBOARD_TITLE = "Top players:"
LEADERBOARD_EMPTY = "Nobody has won a game yet."
LEADERBOARD_LINE = "{rank}. {name}: {wins} wins ({surrender_wins} by surrender), {units} units destroyed"
MY_STATISTICS = (
    "Your statistics:\n"
    "Games won: {wins}\n"
    "Won by surrender: {surrender_wins}\n"
    "Units destroyed: {units}\n"
    "Rank: {rank} of {total}"
)
NO_STATISTICS = "You have no statistics yet. Play a game with /start_session!"
STATISTICS_UNAVAILABLE = "Statistics are unavailable right now, please try again later."

SHUTDOWN = "The host has stopped the bot. Thanks for playing, {name}!"

HELP = (
    "Sea battle for two players.\n"
    "/start_session - find an opponent or wait for one\n"
    "/hit A1 - fire at a cell\n"
    "/leaderboard - best players\n"
    "/my_statistics - your results"
)
