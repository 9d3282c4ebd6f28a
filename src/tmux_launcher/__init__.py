"""
tmux Launcher
Browse a tree of projects, commands and multi-pane profiles and spawn them
as tmux panes arranged into a layout.

Configuration: ~/.config/tmux-launcher/config.toml (XDG standard)
Templates:     ~/.config/tmux-launcher/templates.json

Features:
- Collapsible category tree with multi-select batch launch
- Deterministic multi-pane spawn (create all panes, apply layout, then send)
- Grid session templates ("2x2", "4x2", ...)
- Adaptive panel sizing that follows focus
- Structured JSONL logging (machine-readable)
"""

__version__ = "1.0.0"
