"""
Fundora Blox
============

Engine for the stack-the-moving-block wagering mini-game.

- blox_core: the phase controller and everything it drives (spawning,
  motion, placement, combo scoring, prizes, demo autoplay)
- evaluation: payout simulation harness

All tunable parameters are in game_config.yaml. Prize and stake tables gate
real-money outcomes; change them only together with a new config hash.
"""
