"""
cycle_describer.py

Name, two-line description and quality rating for a director cycle.

Each attribute is first requested from Gemini (when a client is configured)
and post-processed; any GenerationError is logged with its cause and the
deterministic heuristic is used instead.
"""
import logging
import random
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

from cinechronic.schemas import MovieRecord
from cinechronic.services.gemini_client import GeminiClient, GenerationError, GenerationResult

logger = logging.getLogger(__name__)

LONG_SENTENCE_CHARS = 160
RATING_FALLBACK_RANGE = (7.5, 9.5)

DIRECTOR_STYLE_PROFILES: Dict[str, Dict[str, str]] = {
    "Christopher Nolan": {
        "signature": "weaves temporal paradoxes with mathematical precision",
        "focus": "His cerebral pulse expands",
        "texture": "pairing epic tension with science-fiction atmospheres",
    },
    "Quentin Tarantino": {
        "signature": "pairs razor-sharp dialogue with choreographed violence",
        "focus": "His grindhouse style reverberates",
        "texture": "fuelling pop homages and a breakneck rhythm",
    },
    "Martin Scorsese": {
        "signature": "probes morality and guilt with a restless camera",
        "focus": "His operatic storytelling stands out",
        "texture": "showing complex characters and enveloping music",
    },
    "Steven Spielberg": {
        "signature": "fuses childlike wonder with cinematic spectacle",
        "focus": "His humanist gaze guides every set piece",
        "texture": "building heartfelt adventures full of imagination",
    },
    "Denis Villeneuve": {
        "signature": "sculpts contemplative, melancholic science fiction",
        "focus": "His command of silence and scale is hypnotic",
        "texture": "bathing every image in sensory futurism",
    },
    "Wes Anderson": {
        "signature": "draws pop symmetries brimming with melancholy",
        "focus": "His pastel palette narrates family obsessions",
        "texture": "mixing deadpan humour with millimetric choreography",
    },
    "David Fincher": {
        "signature": "dissects dark obsessions with surgical precision",
        "focus": "His cold, meticulous direction grips",
        "texture": "soaking every shot in psychological tension",
    },
    "Bong Joon-ho": {
        "signature": "jumps between genres to lay inequality bare",
        "focus": "His black humour and social suspense hit hard",
        "texture": "weaving satire, empathy and visual chaos",
    },
    "Alejandro González Iñárritu": {
        "signature": "confronts fate with an immersive, cathartic camera",
        "focus": "His emotional sensibility vibrates",
        "texture": "while alternating brutal realism and visual poetry",
    },
    "Alfonso Cuarón": {
        "signature": "embraces long takes that float between intimacy and vertigo",
        "focus": "His detailed humanism lights every scene",
        "texture": "blending naturalism with technical wonder",
    },
    "Coen Brothers": {
        "signature": "intertwine absurd humour with noir fatalism",
        "focus": "Their meta irony and eccentric characters charm",
        "texture": "mixing American folk with unexpected violence",
    },
    "Paul Thomas Anderson": {
        "signature": "portrays American obsessions with expansive lyricism",
        "focus": "His fluid camera breathes alongside fragile characters",
        "texture": "leaving layers of desire, power and spirituality",
    },
}

DEFAULT_STYLE_PROFILE = {
    "signature": "shapes auteur stories with an unmistakable personality",
    "focus": "The narrative pulse leaves its mark",
    "texture": "mixing visual sensitivity with thematic risk",
}

_SENTENCE_BOUNDARY = re.compile(r"(?<=[.!?])\s+")
_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)?")


def get_style_profile(director_name: Optional[str]) -> Dict[str, str]:
    if not director_name:
        return DEFAULT_STYLE_PROFILE
    wanted = director_name.lower()
    for name, profile in DIRECTOR_STYLE_PROFILES.items():
        if name.lower() == wanted:
            return profile
    return DEFAULT_STYLE_PROFILE


def format_highlight_titles(movies: Sequence[MovieRecord]) -> str:
    sample = [m.title for m in movies or [] if m.title][:2]
    if len(sample) == 2:
        return f"{sample[0]} and {sample[1]}"
    if len(sample) == 1:
        return sample[0]
    return "these films"


def fallback_cycle_name(director_name: str, rng: random.Random) -> str:
    last_name = director_name.split()[-1] if director_name.split() else director_name
    return rng.choice([f"{last_name} Essentials", f"{last_name} Cycle", f"{last_name} Collection"])


def fallback_description(director_name: str, movies: Sequence[MovieRecord]) -> str:
    profile = get_style_profile(director_name)
    line1 = f"{director_name} {profile['signature']}."
    line2 = f"{profile['focus']} in {format_highlight_titles(movies)}, {profile['texture']}."
    return f"{line1}\n{line2}"


def fallback_rating(rng: random.Random) -> float:
    low, high = RATING_FALLBACK_RANGE
    return round(rng.uniform(low, high), 1)


def ensure_two_lines(text: Optional[str], director_name: str, movies: Sequence[MovieRecord]) -> str:
    """Coerce free text into exactly two non-empty lines."""
    cleaned = re.sub(r"\s+", " ", (text or "").replace("\r", " ")).strip()
    if not cleaned:
        return fallback_description(director_name, movies)

    sentences = [s for s in _SENTENCE_BOUNDARY.split(cleaned) if s.strip()]
    if len(sentences) >= 2:
        return f"{sentences[0].strip()}\n{sentences[1].strip()}"

    sentence = sentences[0].strip()
    if len(sentence) > LONG_SENTENCE_CHARS:
        midpoint = len(sentence) // 2
        split_at = sentence.find(" ", midpoint)
        if split_at == -1:
            split_at = midpoint
        first, second = sentence[:split_at].strip(), sentence[split_at:].strip()
        if first and second:
            return f"{first}.\n{second}"

    second_line = fallback_description(director_name, movies).split("\n")[1]
    return f"{sentence}\n{second_line}"


def parse_rating(text: str) -> Optional[float]:
    match = _NUMBER.search(text or "")
    if not match:
        return None
    value = float(match.group(0).replace(",", "."))
    if 1 <= value <= 10:
        return round(value, 1)
    return None


@dataclass
class CycleDescription:
    cycle_name: str
    description: str
    rating: float
    generated: Dict[str, bool]


class CycleDescriber:
    """Annotates an assembled movie set for display."""

    def __init__(self, generator: Optional[GeminiClient] = None, rng: Optional[random.Random] = None):
        self.generator = generator
        self.rng = rng or random.Random()

    async def _ask(self, stage: str, prompt: str) -> GenerationResult[str]:
        if self.generator is None:
            return GenerationResult.failure(stage, "generator not configured")
        try:
            return GenerationResult.success(await self.generator.generate(prompt))
        except GenerationError as e:
            return GenerationResult.failure(stage, e.reason)

    async def generate_cycle_name(self, director_name: str, movies: Sequence[MovieRecord]) -> GenerationResult[str]:
        titles = ", ".join(m.title for m in movies[:3])
        prompt = (
            f"Create a creative 2 to 3 word name for a film cycle dedicated to director {director_name}.\n"
            f"The films included are: {titles}.\n"
            "The name must be short, catchy and related to the director's style.\n"
            "Reply ONLY with the name, no explanations or quotes."
        )
        result = await self._ask("cycle_name", prompt)
        if not result.ok:
            return result
        name = result.value.strip().strip("\"'").strip()
        if not name:
            return GenerationResult.failure("cycle_name", "empty name")
        return GenerationResult.success(name)

    async def generate_description(self, director_name: str, movies: Sequence[MovieRecord]) -> GenerationResult[str]:
        titles = ", ".join(m.title for m in movies) or "no specific titles"
        prompt = (
            f"Write EXACTLY two sentences in English describing the filmmaking style of director {director_name}.\n"
            f"Films in this cycle: {titles}.\n"
            "The first sentence must describe the director's tone, rhythm or visual traits.\n"
            "The second must mention 1 or 2 films from the list or tie this cycle to the style.\n"
            "Put a line break between both sentences and add no other text."
        )
        result = await self._ask("description", prompt)
        if not result.ok:
            return result
        return GenerationResult.success(ensure_two_lines(result.value, director_name, movies))

    async def generate_rating(self, director_name: str, movies: Sequence[MovieRecord]) -> GenerationResult[float]:
        titles = ", ".join(m.title for m in movies)
        prompt = (
            f"Rate the overall quality of a film cycle by director {director_name} with these films: {titles}.\n"
            "Score from 1 to 10 (one decimal) considering cinematic quality, coherence of the cycle and relevance of the director.\n"
            "Reply ONLY with the number (for example: 8.5), no explanation."
        )
        result = await self._ask("rating", prompt)
        if not result.ok:
            return result
        rating = parse_rating(result.value)
        if rating is None:
            return GenerationResult.failure("rating", f"unusable rating {result.value!r}")
        return GenerationResult.success(rating)

    async def describe(self, director_name: str, movies: List[MovieRecord]) -> CycleDescription:
        name = await self.generate_cycle_name(director_name, movies)
        description = await self.generate_description(director_name, movies)
        rating = await self.generate_rating(director_name, movies)

        if self.generator is not None:
            for result in (name, description, rating):
                if not result.ok:
                    logger.warning(f"Falling back to heuristics for {director_name}: {result.error}")

        return CycleDescription(
            cycle_name=name.value if name.ok else fallback_cycle_name(director_name, self.rng),
            description=description.value if description.ok else fallback_description(director_name, movies),
            rating=rating.value if rating.ok else fallback_rating(self.rng),
            generated={"cycleName": name.ok, "description": description.ok, "rating": rating.ok},
        )
