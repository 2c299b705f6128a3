"""Prompts for the research-augmented generator's three phases."""

from scatterbrain.generator.models import ResearchContext, UserProfile

# Inputs longer than this are framed as full content rather than a topic
LONG_CONTENT_CHARS = 500

RESEARCH_SYSTEM_PROMPT = (
    "You are an expert researcher. Analyze the EXACT content provided. "
    "Never substitute the actual subject matter with generic productivity or "
    "business topics unless that is what the content is about."
)

CONTENT_SYSTEM_PROMPT = (
    "You are a content strategist. Create content about the ACTUAL topic or "
    "content provided. Read and understand the input before writing, and never "
    "default to generic productivity or business topics unless the input is "
    "about them."
)

EXPLORATION_SYSTEM_PROMPT = (
    "You recommend specific, real resources for going deeper on a topic. "
    "Prefer concrete names and titles over generic suggestions."
)


def build_research_prompt(topic: str) -> str:
    is_long = len(topic) > LONG_CONTENT_CHARS
    heading = "ANALYZE THIS FULL CONTENT:" if is_long else "ANALYZE THIS TOPIC:"
    subject = "the content above" if is_long else "this topic"
    return f"""You are a research director preparing briefing materials.

{heading}
{topic}

Analyze the REAL subject matter of the input. Do not drift to generic topics.

Produce a structured analysis of {subject}:

1. DOMAIN MAPPING: the primary field and 3-4 related fields worth exploring.
2. EXPERT LANDSCAPE: 4-6 leading researchers, practitioners or institutions.
3. HIDDEN DIMENSIONS: what casual enthusiasts miss and experts notice.
4. SURPRISING CONNECTIONS: non-obvious links to psychology, economics, design or technology.
5. CURRENT STATE: recent developments and open questions.
6. COUNTERINTUITIVE FINDINGS: common beliefs the evidence contradicts.

Respond in valid JSON with exactly these keys:
{{
  "domain": "primary field classification",
  "keyDimensions": ["dimension1", "dimension2", "dimension3"],
  "expertPerspectives": ["expert1 with brief credential"],
  "counterintuitiveFindings": ["finding1"],
  "crossDisciplinaryConnections": ["connection1"],
  "currentDevelopments": ["development1"],
  "authorityFigures": ["name: credential/book"]
}}"""


def build_content_prompt(topic: str, research: ResearchContext, profile: UserProfile) -> str:
    expertise = ", ".join(profile.expertise) or "none stated"
    return f"""Create content based on this specific input: "{topic}"

RESEARCH CONTEXT: {research.model_dump_json(by_alias=True, indent=2)}

USER VOICE PROFILE:
- Writing Style: {profile.voice}
- Expertise Areas: {expertise}
- Tone: {profile.preferences.tone}
- Sophistication Level: {profile.preferences.sophistication.value}

RULES:
1. Write about the ACTUAL input above, adding original analysis of it.
2. Each platform takes a DIFFERENT angle on the topic.
3. Keep the user's voice while adding genuine insight.

TWITTER/X THREAD: 5-8 numbered tweets ("1/", "2/", ...), each at most 280 characters.
LINKEDIN: a 250-300 word professional post ending with a question and hashtags.
REDDIT: a 350-500 word discussion post with a title, supporting points,
counterarguments, discussion questions and a TL;DR.
YOUTUBE: a video outline as plain text with title, description, hook script,
main points, examples and a closing call to action.

Respond in JSON with four string values:
{{
  "twitter": "...",
  "linkedin": "...",
  "reddit": "...",
  "youtube": "..."
}}"""


def build_exploration_prompt(topic: str, research: ResearchContext) -> str:
    return f"""Give "explore further" recommendations for this SPECIFIC topic.

TOPIC: {topic}
RESEARCH CONTEXT: {research.model_dump_json(by_alias=True)}

1. PODCASTS/VIDEOS: 3-4 specific shows, episodes or channels.
2. KEY RESEARCHERS/AUTHORS: 3-4 active people with their main work and platform.
3. RELATED TOPICS: 3 non-obvious connected topics.
4. PRACTICAL APPLICATIONS: 2-3 concrete experiments or exercises.

Respond in JSON:
{{
  "podcasts": ["podcast: episode title"],
  "researchers": ["Name: Book/Contribution (Platform)"],
  "relatedTopics": ["topic 1", "topic 2", "topic 3"],
  "practicalApplications": ["specific action 1", "specific action 2"]
}}"""
