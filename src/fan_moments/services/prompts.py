"""Deterministic prompt construction for image and video generation."""

from collections.abc import Sequence

from fan_moments.domain.poses import PoseTemplate

_INITIAL_SETTING = "in a bright, professional NFL facility setting"
_ICONIC_SETTING = "on an NFL stadium field with dramatic lighting"
_IMAGE_SUFFIX = (
    "High quality, photorealistic, cinematic lighting, sharp focus. "
    "NFL team colors visible. Action sports photography style."
)

VIDEO_NEGATIVE_PROMPT = "blurry, distorted, low quality, static, frozen"


def build_pose_prompt(
    pose: PoseTemplate,
    team_name: str,
    player_names: Sequence[str],
    is_initial_pose: bool,
) -> str:
    """Build the composite-image prompt for one pose."""
    player_list = " and ".join(player_names)
    setting = _INITIAL_SETTING if is_initial_pose else _ICONIC_SETTING
    return (
        f"Professional sports photograph of a fan together with {player_list} "
        f"of the {team_name}, {pose.prompt}. {setting}. {_IMAGE_SUFFIX}"
    )


def build_video_prompt(
    team_name: str,
    initial_pose: PoseTemplate | None = None,
    iconic_pose: PoseTemplate | None = None,
) -> str:
    """Build the cinematic transition prompt for the final video."""
    if initial_pose is not None and iconic_pose is not None:
        return (
            f"Smooth cinematic transition from {initial_pose.description} to "
            f"{iconic_pose.description}. Professional sports video with dramatic "
            f"{team_name} stadium lighting. Dynamic camera movement. "
            "High quality video production. 5 seconds."
        )
    return (
        "Professional cinematic sports video showing smooth transition from "
        "casual pose to dynamic celebration. NFL stadium setting with dramatic "
        f"lighting. High-quality production. {team_name} team atmosphere. "
        "Dynamic camera movement. 5 seconds."
    )
