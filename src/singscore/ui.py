from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import pygame

from .dsp import hz_to_note
from .scoring import Tier

TIER_COLORS = {
    Tier.PERFECT: (120, 235, 140),
    Tier.GOOD: (255, 210, 110),
    Tier.MISS: (235, 110, 110),
}


@dataclass
class UIState:
    title: str
    artist: Optional[str]
    score: int
    tier: Optional[Tier]
    detected_hz: Optional[float]
    reference_hz: Optional[float]
    scoring_enabled: bool = True


class PygameUI:
    def __init__(self, fullscreen: bool = False, size: tuple[int, int] | None = None):
        pygame.init()
        flags = pygame.FULLSCREEN if fullscreen else 0
        if size is None:
            self.screen = pygame.display.set_mode((0, 0), flags)
        else:
            self.screen = pygame.display.set_mode(size, flags)
        pygame.display.set_caption("SingScore")

        self.clock = pygame.time.Clock()
        self.width, self.height = self.screen.get_size()
        self.font_title = pygame.font.SysFont("DejaVu Sans", 48, bold=True)
        self.font_tier = pygame.font.SysFont("DejaVu Sans", 72, bold=True)
        self.font_score = pygame.font.SysFont("DejaVu Sans", 40, bold=True)
        self.font_meta = pygame.font.SysFont("DejaVu Sans", 28)

    def update(self, state: UIState) -> bool:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                return False
            if event.type == pygame.KEYDOWN and event.key in (pygame.K_ESCAPE, pygame.K_q):
                return False

        self.screen.fill((10, 12, 18))
        self._draw_header(state)
        self._draw_feedback(state)
        self._draw_pitches(state)

        pygame.display.flip()
        self.clock.tick(30)
        return True

    def _draw_header(self, state: UIState) -> None:
        title = state.title
        if state.artist:
            title = f"{state.title} - {state.artist}"
        text = self.font_title.render(title, True, (240, 240, 240))
        self.screen.blit(text, (40, 24))

    def _draw_feedback(self, state: UIState) -> None:
        if state.scoring_enabled:
            label = state.tier.label if state.tier else ""
            color = TIER_COLORS.get(state.tier, (200, 200, 200))
            score_text = f"Score: {state.score}"
        else:
            label = ""
            color = (200, 200, 200)
            score_text = "No reference: not scoring"

        tier_surf = self.font_tier.render(label, True, color)
        score_surf = self.font_score.render(score_text, True, (180, 220, 255))
        self.screen.blit(tier_surf, tier_surf.get_rect(center=(self.width // 2, self.height // 2)))
        self.screen.blit(score_surf, score_surf.get_rect(center=(self.width // 2, self.height // 2 + 80)))

    def _draw_pitches(self, state: UIState) -> None:
        text = f"You: {_format_hz(state.detected_hz)}  |  Reference: {_format_hz(state.reference_hz)}"
        surf = self.font_meta.render(text, True, (150, 150, 150))
        self.screen.blit(surf, (40, self.height - 60))

    def close(self) -> None:
        pygame.quit()


def _format_hz(hz: Optional[float]) -> str:
    if hz is None:
        return "--"
    return f"{hz:6.1f} Hz ({hz_to_note(hz)})"
