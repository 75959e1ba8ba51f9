import random

from werewolf.narration import (
    DEFAULT_NARRATION,
    NARRATION_TEMPLATES,
    ROLE_REVEAL_MESSAGES,
    TemplateNarrator,
    fill_template,
    get_narration,
)
from werewolf.roles import RoleType


def test_fill_template_substitutes_known_names():
    text = fill_template("{victimName} was found in {villageName}.",
                         {"victimName": "Mira", "villageName": "Thornwick"})
    assert text == "Mira was found in Thornwick."


def test_fill_template_keeps_unknown_placeholders():
    assert fill_template("{hunterName} shot {targetName}", {"hunterName": "Kael"}) == \
        "Kael shot {targetName}"


def test_unknown_event_falls_back():
    assert get_narration("meteorStrike") == DEFAULT_NARRATION


def test_every_template_fills_cleanly():
    variables = {
        "villageName": "Ravencrest", "victimName": "Mira", "eliminatedName": "Kael",
        "role": "Werewolf", "hunterName": "Rowan", "targetName": "Nyx",
        "result": "a Werewolf", "tannerName": "Ash",
    }
    for templates in NARRATION_TEMPLATES.values():
        for template in templates:
            assert "{" not in fill_template(template, variables)


def test_narrator_is_seeded():
    first = TemplateNarrator(random.Random(5))
    second = TemplateNarrator(random.Random(5))
    variables = {"villageName": "Ashenvale"}
    for event in ("gameStart", "nightFall", "dayDiscussion"):
        text = first(event, variables)
        assert text == second(event, variables)
        assert "{villageName}" not in text


def test_every_role_has_a_reveal_message():
    assert set(ROLE_REVEAL_MESSAGES) == set(RoleType)
