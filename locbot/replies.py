HELP_TEXT = "I understand /stream [secret] and /stop"

STREAM_TEXT = "Start sharing to `{url}`"

STOP_TEXT = "Stop sharing locations"

STORAGE_FAILURE_TEXT = "Sorry, something went wrong. Try again."

# (command, description) pairs advertised through setMyCommands
BOT_COMMANDS = (
    ("stream", "Start streaming location shared in the group"),
    ("stop", "Stop current location sharing from the group"),
    ("help", "Give some help, maybe"),
)
