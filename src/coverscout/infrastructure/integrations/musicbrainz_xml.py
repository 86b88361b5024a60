"""Parse MusicBrainz XML search responses into release candidates.

Hey future me - the XML web service puts everything in the mmd-2.0 namespace and
the relevance score in the "ext" namespace (ns2:score / ext:score). We match with
"{*}" wildcards so we don't care which prefix or namespace version the server uses.

Release search:   <release-list><release id=".." ns2:score="100">...</release></release-list>
Recording search: <recording-list><recording ...><release-list><release>...</release>
                  One candidate per release the recording appears on, carrying the
                  recording title and the recording's artists.
"""

from xml.etree import ElementTree as ET

from coverscout.domain.entities import ReleaseCandidate
from coverscout.domain.exceptions import MusicBrainzError
from coverscout.domain.value_objects import ReleaseType, parse_year


def _text(element: ET.Element | None, path: str) -> str | None:
    if element is None:
        return None
    child = element.find(path)
    if child is None or child.text is None:
        return None
    return child.text.strip() or None


def _score(element: ET.Element) -> int:
    for name, value in element.attrib.items():
        if name == "score" or name.endswith("}score") or name.endswith(":score"):
            try:
                return int(value)
            except ValueError:
                return 0
    return 0


def _artists(element: ET.Element) -> list[str]:
    names: list[str] = []
    for credit in element.findall("./{*}artist-credit/{*}name-credit"):
        name = _text(credit, "./{*}artist/{*}name")
        if name:
            names.append(name)
    return names


def _release_details(release: ET.Element) -> tuple[str | None, ReleaseType | None, int]:
    """(release title, primary type, year) of a release element."""
    album = _text(release, "./{*}title")
    release_type = ReleaseType.from_string(_text(release, "./{*}release-group/{*}primary-type"))
    year = parse_year(_text(release, "./{*}date"))
    return album, release_type, year


def _parse_document(xml: str | bytes) -> ET.Element:
    try:
        return ET.fromstring(xml)
    except ET.ParseError as e:
        raise MusicBrainzError(f"Failed to parse MusicBrainz XML: {e}") from e


def parse_release_list(xml: str | bytes) -> list[ReleaseCandidate]:
    """Parse a release search response.

    Raises:
        MusicBrainzError: If the document isn't well-formed XML
    """
    root = _parse_document(xml)
    candidates: list[ReleaseCandidate] = []
    for release in root.findall("./{*}release-list/{*}release"):
        release_id = (release.get("id") or "").strip()
        if not release_id:
            continue
        album, release_type, year = _release_details(release)
        candidates.append(
            ReleaseCandidate(
                id=release_id,
                score_hint=_score(release),
                album=album,
                artists=_artists(release),
                type=release_type,
                year=year,
            )
        )
    return candidates


def parse_recording_list(xml: str | bytes) -> list[ReleaseCandidate]:
    """Parse a recording search response.

    Raises:
        MusicBrainzError: If the document isn't well-formed XML
    """
    root = _parse_document(xml)
    candidates: list[ReleaseCandidate] = []
    for recording in root.findall("./{*}recording-list/{*}recording"):
        score = _score(recording)
        title = _text(recording, "./{*}title")
        artists = _artists(recording)
        for release in recording.findall("./{*}release-list/{*}release"):
            release_id = (release.get("id") or "").strip()
            if not release_id:
                continue
            album, release_type, year = _release_details(release)
            candidates.append(
                ReleaseCandidate(
                    id=release_id,
                    score_hint=score,
                    title=title,
                    album=album,
                    artists=list(artists),
                    type=release_type,
                    year=year,
                )
            )
    return candidates
