"""Tests for reading lookup tags from audio files."""

from pathlib import Path

from coverscout.domain.value_objects import TagQuery
from coverscout.infrastructure.tags import read_tag_query, read_tags


class TestReadTags:
    """Tests for read_tags() and read_tag_query()."""

    def test_non_audio_file(self, tmp_path: Path) -> None:
        path = tmp_path / "cover.txt"
        path.write_text("hello")
        assert read_tags(path) is None

    def test_tags_are_normalized(self, mocker) -> None:
        audio = mocker.MagicMock()
        audio.tags = {"Album": ["Nevermind"], "artist": ["Nirvana"]}
        mocker.patch("coverscout.infrastructure.tags.MutagenFile", return_value=audio)

        assert read_tags("/music/01.flac") == {"album": ["Nevermind"], "artist": ["Nirvana"]}

    def test_file_without_tags(self, mocker) -> None:
        audio = mocker.MagicMock()
        audio.tags = None
        mocker.patch("coverscout.infrastructure.tags.MutagenFile", return_value=audio)

        assert read_tags("/music/01.flac") is None

    async def test_read_tag_query(self, mocker) -> None:
        mocker.patch(
            "coverscout.infrastructure.tags.read_tags",
            return_value={"album": ["Nevermind"], "date": ["1991"], "tracknumber": ["3/12"]},
        )

        query = await read_tag_query("/music/03.flac")

        assert query == TagQuery(album="Nevermind", year=1991, track_number=3, total_tracks=12)
