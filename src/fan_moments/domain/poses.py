"""Pose templates used to build composite-image prompts."""

import random
from dataclasses import dataclass


@dataclass(frozen=True)
class PoseTemplate:
    """A named pose with the phrase injected into generation prompts."""

    id: str
    name: str
    description: str
    prompt: str


INITIAL_POSES: tuple[PoseTemplate, ...] = (
    PoseTemplate(
        id="greeting",
        name="Friendly Greeting",
        description="A warm, friendly greeting moment",
        prompt=(
            "in a warm greeting pose, shaking hands with genuine smiles, "
            "friendly and welcoming atmosphere"
        ),
    ),
    PoseTemplate(
        id="casual-standing",
        name="Casual Standing",
        description="Standing together in a friendly, relaxed pose",
        prompt=(
            "standing side by side in a casual, friendly pose with slight smiles, "
            "natural body language"
        ),
    ),
    PoseTemplate(
        id="casual-handshake",
        name="Casual Handshake",
        description="A friendly handshake greeting",
        prompt="shaking hands in a casual, friendly greeting, both smiling warmly",
    ),
    PoseTemplate(
        id="side-by-side",
        name="Side by Side",
        description="Standing next to each other looking forward",
        prompt=(
            "standing shoulder to shoulder, both looking forward with confident "
            "expressions"
        ),
    ),
)

ICONIC_POSES: tuple[PoseTemplate, ...] = (
    PoseTemplate(
        id="celebration",
        name="Victory Celebration",
        description="Exciting celebration moment together",
        prompt=(
            "celebrating together with excitement and energy, arms raised, "
            "big smiles, triumphant victory celebration pose"
        ),
    ),
    PoseTemplate(
        id="power-handshake",
        name="Power Handshake",
        description="90-degree hand clasp showing unity and strength",
        prompt=(
            "gripping hands together at 90-degree angle in a powerful handshake, "
            "intense eye contact, showing unity and determination"
        ),
    ),
    PoseTemplate(
        id="fist-bump",
        name="Fist Bump",
        description="Dynamic fist bump celebration",
        prompt=(
            "doing an energetic fist bump with big smiles, celebrating together, "
            "dynamic pose"
        ),
    ),
    PoseTemplate(
        id="high-five",
        name="High Five",
        description="Enthusiastic high five in celebration",
        prompt=(
            "giving each other a high five with excitement and joy, "
            "arms extended upward"
        ),
    ),
    PoseTemplate(
        id="victory-pose",
        name="Victory Pose",
        description="Arms raised in victory celebration",
        prompt=(
            "both raising their arms in victory, celebrating together with "
            "triumphant expressions"
        ),
    ),
    PoseTemplate(
        id="team-huddle",
        name="Team Huddle",
        description="Close huddle showing team unity",
        prompt=(
            "in a tight huddle with arms around each other, showing team unity "
            "and brotherhood"
        ),
    ),
    PoseTemplate(
        id="chest-bump",
        name="Chest Bump",
        description="Athletic celebration chest bump",
        prompt=(
            "doing a celebratory chest bump with intensity and energy, "
            "athletic celebration pose"
        ),
    ),
)

_POSES_BY_ID = {pose.id: pose for pose in (*INITIAL_POSES, *ICONIC_POSES)}


def get_pose_by_id(pose_id: str) -> PoseTemplate | None:
    """Return a pose template by id, if known."""
    return _POSES_BY_ID.get(pose_id)


def random_initial_pose() -> PoseTemplate:
    return random.choice(INITIAL_POSES)  # noqa: S311


def random_iconic_pose() -> PoseTemplate:
    return random.choice(ICONIC_POSES)  # noqa: S311
