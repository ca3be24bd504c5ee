import pytest

from lessfeed.domain.errors import CardSourceError
from lessfeed.domain.models import Lang
from lessfeed.infrastructure.adapters import YamlCardSource

BY_LANG = """
en:
  - id: c1
    created_at: "2024-01-01"
    title: Gravity
    hook: Why things fall
    bullets: [Mass attracts mass, "  "]
    why: It shapes orbits
  - id: c2
    created_at: "2025-01-01"
    title: Tides
    hook: The moon pulls the sea
    bullets: [Two bulges]
    why: Coasts depend on it
  - id: broken
    title: ""
fr:
  - id: c1
    title: Gravité
    hook: Pourquoi les choses tombent
    bullets: [La masse attire la masse]
    why: Elle façonne les orbites
"""


@pytest.mark.asyncio
async def test_reads_language_section(tmp_path):
    path = tmp_path / "cards.yaml"
    path.write_text(BY_LANG, encoding="utf-8")
    source = YamlCardSource(path)

    en = await source.fetch_cards(Lang.EN)
    assert [c.id for c in en] == ["c2", "c1"]
    assert en[1].bullets == ("Mass attracts mass",)

    fr = await source.fetch_cards(Lang.FR)
    assert [c.title for c in fr] == ["Gravité"]

    # Missing section falls back to English.
    es = await source.fetch_cards(Lang.ES)
    assert {c.id for c in es} == {"c1", "c2"}


@pytest.mark.asyncio
async def test_plain_list_layout(tmp_path):
    path = tmp_path / "cards.yaml"
    path.write_text("- {id: a, title: T, hook: H, bullets: [b], why: W}\n")
    cards = await YamlCardSource(path).fetch_cards(Lang.FR)
    assert [c.id for c in cards] == ["a"]


@pytest.mark.asyncio
async def test_empty_file(tmp_path):
    path = tmp_path / "cards.yaml"
    path.write_text("")
    assert await YamlCardSource(path).fetch_cards(Lang.EN) == []


@pytest.mark.asyncio
async def test_missing_file_raises(tmp_path):
    with pytest.raises(CardSourceError):
        await YamlCardSource(tmp_path / "nope.yaml").fetch_cards(Lang.EN)


@pytest.mark.asyncio
async def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / "cards.yaml"
    path.write_text("en: [unclosed")
    with pytest.raises(CardSourceError):
        await YamlCardSource(path).fetch_cards(Lang.EN)


@pytest.mark.asyncio
async def test_scalar_layout_raises(tmp_path):
    path = tmp_path / "cards.yaml"
    path.write_text("just a string")
    with pytest.raises(CardSourceError):
        await YamlCardSource(path).fetch_cards(Lang.EN)
