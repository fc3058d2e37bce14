"""Event type constants for chainmode."""

# Model events
MODEL_INVOCATION = "model_invocation"

# Tool events
TOOL_ROUND_COMPLETED = "tool_round_completed"

# Loop events
ROUND_COMPLETED = "round_completed"

# Run outcome events
RUN_COMPLETED = "run_completed"
RUN_PAUSED = "run_paused"
RUN_FAILED = "run_failed"
