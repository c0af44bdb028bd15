"""
Unit tests for the streaming-client adapter.
"""

from pathlib import Path

import pytest

from libplaygist import base62
from libplaygist.client import ClientPlaylistView, UNKNOWN_AUTHOR, merge_playlists
from libplaygist.playlist import Playgist


class CountingListener:
    def __init__(self):
        self.count = 0

    def playlist_changed(self, playlist):
        self.count += 1


def make_playlist(playlist_id="b" * 40, **kwargs):
    return Playgist(playlist_id, Path("/tmp") / playlist_id, f"owner/{playlist_id}", **kwargs)


class TestClientPlaylistView:
    """Tests for ClientPlaylistView."""

    def test_fields(self):
        playlist = make_playlist(tracks=["t1"], metadata={"name": "Mix", "collaborative": "true"})
        view = ClientPlaylistView(playlist)

        assert view.id == playlist.uri
        assert view.name == "Mix"
        assert view.collaborative is True
        assert view.tracks == ("t1",)
        assert view.has_tracks is True
        assert view.revision == 0
        assert view.checksum == 0

    def test_unknown_author(self):
        view = ClientPlaylistView(make_playlist())
        assert view.author == UNKNOWN_AUTHOR
        assert view.has_tracks is False

    def test_setters_delegate(self):
        """Test that every client-side change goes through the record."""
        playlist = make_playlist()
        listener = CountingListener()
        playlist.set_listener(listener)
        view = ClientPlaylistView(playlist)

        view.name = "Renamed"
        view.author = "liesen"
        view.collaborative = True
        view.tracks = ["x", "y"]

        assert playlist.name == "Renamed"
        assert playlist.author == "liesen"
        assert playlist.collaborative is True
        assert playlist.tracks == ("x", "y")
        assert listener.count == 4

    def test_id_is_immutable(self):
        view = ClientPlaylistView(make_playlist())
        with pytest.raises(NotImplementedError):
            view.id = "other"

    def test_equality_case_insensitive(self):
        playlist = make_playlist()
        view = ClientPlaylistView(playlist)

        class Remote:
            id = playlist.uri.upper()

        assert view == Remote()
        assert view == playlist
        assert view == ClientPlaylistView(make_playlist())
        assert view != ClientPlaylistView(make_playlist("c" * 40))
        assert hash(view) == hash(ClientPlaylistView(make_playlist()))

    def test_track_uris(self):
        hex_id = "0123456789abcdef0123456789abcdef"
        view = ClientPlaylistView(make_playlist(tracks=[hex_id, "local:x"]))
        assert view.track_uris() == [base62.track_uri(hex_id), "local:x"]


class TestMergePlaylists:
    """Tests for merge_playlists."""

    def test_prepends_local_playlists(self):
        local = [make_playlist("1" * 40), make_playlist("2" * 40)]
        external = ("remote-a", "remote-b")
        merged = merge_playlists(local, external)

        assert [v.playlist for v in merged[:2]] == local
        assert merged[2:] == ["remote-a", "remote-b"]
        assert external == ("remote-a", "remote-b")

    def test_external_not_mutated(self):
        external = ["remote"]
        merged = merge_playlists([make_playlist()], external)
        assert external == ["remote"]
        assert merged is not external
        assert len(merged) == 2

    def test_empty(self):
        assert merge_playlists([], []) == []
