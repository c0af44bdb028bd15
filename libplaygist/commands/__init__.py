from .playlists import (
    resolve_playlist,
    list_logic,
    show_logic,
    create_logic,
    rename_logic,
    add_tracks_logic,
    remove_tracks_logic,
    collab_logic,
    sort_logic,
    history_logic,
    push_logic,
)

__all__ = [
    "resolve_playlist",
    "list_logic",
    "show_logic",
    "create_logic",
    "rename_logic",
    "add_tracks_logic",
    "remove_tracks_logic",
    "collab_logic",
    "sort_logic",
    "history_logic",
    "push_logic",
]
