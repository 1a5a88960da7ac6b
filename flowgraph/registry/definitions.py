"""Built-in flow catalog.

Every entry is validated when the registry is built; a definition that breaks
an invariant is logged and left out of ``REGISTRY``.
"""

from __future__ import annotations

from typing import List

from ..contracts import FlowDefinition, FlowOutput, FlowPhase, FlowStep, SchemaField

GEMINI_FLASH = "gemini-2.5-flash"


def _f(name: str, type_: str, description: str, example: str | None = None) -> SchemaField:
    return SchemaField(name=name, type=type_, description=description, example=example)


VIDEO_DISCOVERY = FlowDefinition(
    id="video-discovery",
    name="AI Video Discovery",
    description=(
        "Researches trending AI topics, pre-fetches YouTube videos for each topic "
        "in parallel, and lets the user pick a video to watch."
    ),
    version="2.0.0",
    location="landing",
    tags=["landing", "ai", "video", "youtube", "gemini"],
    icon="Play",
    voice_triggers=["video", "watch", "youtube"],
    output=FlowOutput(
        name="selectedVideo", type="object", description="The video the user chose to watch"
    ),
    phases=[
        FlowPhase(id="researching", label="Research", step_ids=["research-topics"]),
        FlowPhase(
            id="searching-videos",
            label="Find Videos",
            step_ids=["prefetch-videos", "validate-videos"],
        ),
        FlowPhase(id="select-video", label="Pick Video", step_ids=["select-topic", "select-video"]),
        FlowPhase(id="watching", label="Watch", step_ids=["play-video"]),
    ],
    steps=[
        FlowStep(
            id="research-topics",
            name="Research AI Trends",
            kind="llm",
            description="Generates 5 trending AI topics suitable for beginners as structured JSON.",
            prompt=(
                "You are an AI education expert. Generate exactly 5 trending AI topics "
                "that would be interesting for beginners. Return ONLY valid JSON."
            ),
            user_message="What are the 5 most interesting AI topics a beginner should learn about?",
            model=GEMINI_FLASH,
            input_schema=[],
            output_schema=[
                _f(
                    "topics",
                    "array",
                    "Array of 5 trending AI topics",
                    '[{"rank":1,"title":"AI Agents","description":"AI that acts on your behalf"}]',
                )
            ],
        ),
        FlowStep(
            id="prefetch-videos",
            name="Pre-fetch Videos (parallel)",
            kind="llm",
            description="Finds 3 real YouTube videos for each topic; one call per topic, run concurrently.",
            prompt='You are a YouTube video researcher. Find 3 real YouTube videos about "{topic.title}".',
            user_message='Find 3 best YouTube videos for a beginner about: "{topic.title}"',
            model=GEMINI_FLASH,
            input_schema=[_f("topic", "object", "The AI topic to search videos for")],
            output_schema=[_f("videos", "array", "Array of 3 YouTube video results")],
            depends_on=["research-topics"],
            parallel=True,
        ),
        FlowStep(
            id="validate-videos",
            name="Validate YouTube Videos",
            kind="validate",
            description="Checks each embed id against YouTube oEmbed to drop unavailable videos.",
            input_schema=[_f("videos", "array", "Candidate videos to validate")],
            output_schema=[_f("videos", "array", "Only videos confirmed available on YouTube")],
            depends_on=["prefetch-videos"],
        ),
        FlowStep(
            id="select-topic",
            name="User Picks Topic",
            kind="user-input",
            description="Shows the topic cards with per-topic video loading status.",
            input_schema=[
                _f("topics", "array", "The 5 researched topics"),
                _f("videoCacheStatus", "object", "Loading status per topic"),
            ],
            output_schema=[_f("selectedTopic", "object", "The topic the user picked")],
            depends_on=["research-topics"],
        ),
        FlowStep(
            id="select-video",
            name="User Picks Video",
            kind="user-input",
            description="Shows up to 3 validated videos ranked by engagement.",
            input_schema=[_f("videos", "array", "Validated videos for the selected topic")],
            output_schema=[_f("selectedVideo", "object", "The video the user chose to watch")],
            depends_on=["select-topic", "validate-videos"],
        ),
        FlowStep(
            id="play-video",
            name="Play Video",
            kind="display",
            description="Embeds the selected video with creator badge and engagement stats.",
            input_schema=[_f("selectedVideo", "object", "The chosen video")],
            output_schema=[],
            depends_on=["select-video"],
        ),
    ],
)

AI_CLIP = FlowDefinition(
    id="ai-clip",
    name="AI Clip",
    description=(
        "Researches the top news story and generates a single 8-second AI video clip. "
        "One research, one script, one clip."
    ),
    version="1.0.0",
    location="landing",
    tags=["landing", "video", "clip", "ai", "news", "single"],
    icon="Film",
    voice_triggers=["ai clip", "single clip", "quick clip"],
    output=FlowOutput(
        name="videoClip",
        type="object",
        description="A single 8-second AI-generated video clip about a top news story",
    ),
    phases=[
        FlowPhase(id="researching", label="Research", step_ids=["deep-research"]),
        FlowPhase(id="scripting", label="Script", step_ids=["write-clip-script"]),
        FlowPhase(id="generating", label="Generate", step_ids=["generate-clip"]),
        FlowPhase(id="complete", label="Preview", step_ids=["preview-clip"]),
    ],
    steps=[
        FlowStep(
            id="deep-research",
            name="Deep Research - Top Story",
            kind="llm",
            description="Finds the single most visually interesting news story of the last 7 days.",
            prompt="You are a senior news researcher. Identify the single most interesting story of the week.",
            model=GEMINI_FLASH,
            input_schema=[],
            output_schema=[
                _f("headline", "string", "Punchy headline"),
                _f("summary", "string", "Vivid visual context"),
                _f("keyFacts", "array", "2-4 facts with numbers"),
            ],
        ),
        FlowStep(
            id="write-clip-script",
            name="Write 8s Clip Script",
            kind="llm",
            description="Writes a self-contained 8-second clip script with narration and visuals.",
            prompt="Write a single 8-SECOND clip script: hook, reveal, payoff.",
            model=GEMINI_FLASH,
            input_schema=[_f("research", "object", "The deep research output")],
            output_schema=[
                _f("narration", "string", "Voiceover text"),
                _f("visualDescription", "string", "Cinematic video prompt"),
            ],
            depends_on=["deep-research"],
        ),
        FlowStep(
            id="generate-clip",
            name="Generate Clip (8s)",
            kind="llm",
            subtype="video",
            description="Generates the 8-second clip from the visual description.",
            prompt="Generate an 8-second video clip from the visual description.",
            input_schema=[_f("visualDescription", "string", "Clip visual description")],
            output_schema=[
                _f("videoBase64", "string", "Base64-encoded MP4 clip"),
                _f("durationSeconds", "number", "Clip duration"),
            ],
            depends_on=["write-clip-script"],
        ),
        FlowStep(
            id="preview-clip",
            name="Preview & Export",
            kind="display",
            description="Displays the clip with its script, key facts and a download option.",
            input_schema=[_f("clip", "object", "The generated video clip")],
            output_schema=[_f("exitSummary", "string", "Summary handed back to the landing flow")],
            depends_on=["generate-clip"],
        ),
    ],
)

AI_CONSULTATION = FlowDefinition(
    id="ai-consultation",
    name="AI Consultation",
    description="Interviews the user with Socratic questions and delivers tailored findings.",
    version="1.2.0",
    location="landing",
    tags=["landing", "consultation", "interview", "socratic"],
    icon="MessageCircle",
    voice_triggers=["consultation", "advice", "interview me"],
    output=FlowOutput(
        name="findings", type="object", description="Obvious and non-obvious recommendations"
    ),
    steps=[
        FlowStep(
            id="first-question",
            name="Opening Question",
            kind="llm",
            description="Asks the first question of the interview.",
            prompt="Open the consultation with one short question about the user's goal.",
            model=GEMINI_FLASH,
            input_schema=[],
            output_schema=[_f("question", "string", "The opening question")],
        ),
        FlowStep(
            id="follow-up-questions",
            name="Recursive Socratic Questions",
            kind="llm",
            description="Each question builds on prior answers until the context is complete.",
            prompt="Ask the next question given the conversation history.",
            model=GEMINI_FLASH,
            input_schema=[_f("history", "array", "Prior Q&A pairs")],
            output_schema=[
                _f("nextQuestion", "string", "Next interview question"),
                _f("done", "boolean", "Whether the interview is complete"),
            ],
            depends_on=["first-question"],
            parallel=True,
        ),
        FlowStep(
            id="user-answers",
            name="User Responses",
            kind="user-input",
            description="Free-text or voice answers to the questions.",
            input_schema=[_f("question", "string", "The current question")],
            output_schema=[_f("answer", "string", "The user's response")],
            depends_on=["first-question"],
            parallel=True,
        ),
        FlowStep(
            id="analysis",
            name="Generate Findings",
            kind="llm",
            description="Delivers two obvious and two non-obvious findings from the transcript.",
            prompt="Analyse the interview transcript and produce findings.",
            model=GEMINI_FLASH,
            input_schema=[_f("transcript", "string", "Complete interview transcript")],
            output_schema=[
                _f("obvious", "array", "Primary recommendations"),
                _f("nonObvious", "array", "Secondary recommendations"),
            ],
            depends_on=["follow-up-questions", "user-answers"],
        ),
        FlowStep(
            id="display-results",
            name="Display Findings",
            kind="display",
            description="Renders the findings.",
            input_schema=[_f("findings", "object", "The findings")],
            output_schema=[],
            depends_on=["analysis"],
        ),
    ],
)

TEST_NEWSLETTER = FlowDefinition(
    id="test-newsletter",
    name="European Football Newsletter",
    description=(
        "Discovers three trending European football stories, writes articles, then produces "
        "a newsletter, an infographic and a slideshow with generated scene images."
    ),
    version="5.0.0",
    location="landing",
    tags=["landing", "newsletter", "football", "infographic", "media-pipeline"],
    icon="Newspaper",
    voice_triggers=["newsletter", "football", "news", "daily", "infographic"],
    output=FlowOutput(
        name="mediaPackage",
        type="object",
        description="Newsletter, infographic image and slideshow scene images",
    ),
    phases=[
        FlowPhase(id="discovering", label="Discover", step_ids=["discover-stories"]),
        FlowPhase(id="writing", label="Write", step_ids=["write-articles"]),
        FlowPhase(
            id="summarizing",
            label="Rank & Summarize",
            step_ids=["newsletter-summary", "rank-stories"],
        ),
        FlowPhase(
            id="producing", label="Produce", step_ids=["design-infographic", "create-narrative"]
        ),
        FlowPhase(id="assembling", label="Assemble", step_ids=["generate-storyboard"]),
        FlowPhase(
            id="generating-images",
            label="Generate Images",
            step_ids=["generate-infographic-image", "generate-scene-images"],
        ),
        FlowPhase(
            id="assembling-briefing", label="Daily Briefing", step_ids=["assemble-daily-briefing"]
        ),
    ],
    steps=[
        FlowStep(
            id="discover-stories",
            name="Discover Stories",
            kind="llm",
            description="Finds three trending stories across the major European leagues.",
            prompt="Discover 3 trending European football stories with headline, summary, league and keyStat.",
            input_schema=[],
            output_schema=[_f("stories", "array", "Three stories with headline, summary, league, keyStat")],
        ),
        FlowStep(
            id="write-articles",
            name="Write Articles",
            kind="llm",
            description="Writes a short article and an image description for each story.",
            prompt="Write 3 newspaper articles (60-80 words each) with image descriptions.",
            input_schema=[_f("stories", "array", "The discovered stories")],
            output_schema=[_f("articles", "array", "Articles with headline, body, imageDescription")],
            depends_on=["discover-stories"],
        ),
        FlowStep(
            id="newsletter-summary",
            name="Newsletter Summary",
            kind="llm",
            description="Distills the articles into an edition summary with mood and takeaway.",
            prompt="Create a newsletter summary with editionTitle, topStory, mood and takeaway.",
            input_schema=[_f("articles", "array", "The written articles")],
            output_schema=[_f("newsletter", "object", "Edition summary")],
            depends_on=["write-articles"],
            parallel=True,
        ),
        FlowStep(
            id="rank-stories",
            name="Rank Stories",
            kind="llm",
            description="Ranks the stories by newsworthiness; the top one leads the infographic.",
            prompt="Rank the stories: pick 1 main and 2 supporting with stat callouts.",
            input_schema=[
                _f("articles", "array", "The written articles"),
                _f("stories", "array", "Original story data with keyStats"),
            ],
            output_schema=[_f("ranked", "object", "Main story, supporting stories and rationale")],
            depends_on=["write-articles"],
            parallel=True,
        ),
        FlowStep(
            id="design-infographic",
            name="Design Infographic",
            kind="llm",
            description="Builds infographic data around scores and transfer fees plus an image prompt.",
            prompt="Design an infographic with a main story, 2 supporting cards and an imagePrompt.",
            input_schema=[_f("ranked", "object", "Ranked stories")],
            output_schema=[_f("infographic", "object", "Infographic data with imagePrompt")],
            depends_on=["rank-stories"],
            parallel=True,
        ),
        FlowStep(
            id="create-narrative",
            name="Create Narrative",
            kind="llm",
            description="Writes a 60-second broadcast narration script.",
            prompt="Write a 60-second sports narration: intro (10s), main (20s), 2 supporting (15s each).",
            input_schema=[_f("ranked", "object", "Ranked stories")],
            output_schema=[_f("narrative", "object", "Script segments and total duration")],
            depends_on=["rank-stories"],
            parallel=True,
        ),
        FlowStep(
            id="generate-storyboard",
            name="Generate Storyboard",
            kind="llm",
            description="Creates a 4-scene storyboard for the slideshow.",
            prompt="Create 4 storyboard scenes with image descriptions, visual style and transitions.",
            input_schema=[
                _f("narrative", "object", "The narration script"),
                _f("ranked", "object", "Ranked stories for visual context"),
            ],
            output_schema=[_f("storyboard", "object", "Scenes with imageDescription and narrationText")],
            depends_on=["create-narrative"],
            parallel=True,
        ),
        FlowStep(
            id="generate-infographic-image",
            name="Generate Infographic Image",
            kind="llm",
            subtype="image",
            description="Generates the wallpaper-style infographic image.",
            prompt="Generate a cinematic infographic image emphasizing scores and transfer fees.",
            input_schema=[_f("infographic", "object", "Infographic data with imagePrompt")],
            output_schema=[
                _f("imageBase64", "string", "Base64-encoded image"),
                _f("mimeType", "string", "Image MIME type"),
            ],
            depends_on=["design-infographic", "generate-storyboard"],
            parallel=True,
        ),
        FlowStep(
            id="generate-scene-images",
            name="Generate Scene Images",
            kind="llm",
            subtype="image",
            description="Generates one image per storyboard scene.",
            prompt="Generate a cinematic image for each storyboard scene.",
            input_schema=[_f("storyboard", "object", "Storyboard scenes")],
            output_schema=[_f("images", "array", "Generated scene images (base64)")],
            depends_on=["generate-storyboard"],
            parallel=True,
        ),
        FlowStep(
            id="assemble-daily-briefing",
            name="Assemble Daily Briefing",
            kind="display",
            description="Presents the newsletter, infographic and slideshow as one briefing.",
            input_schema=[
                _f("newsletter", "object", "Edition summary"),
                _f("infographicImage", "object", "Generated infographic image"),
                _f("sceneImages", "array", "Generated scene images"),
            ],
            output_schema=[_f("exitSummary", "string", "Summary handed back to the landing flow")],
            depends_on=["newsletter-summary", "generate-infographic-image", "generate-scene-images"],
        ),
    ],
)

BUILTIN_FLOWS: List[FlowDefinition] = [VIDEO_DISCOVERY, AI_CLIP, AI_CONSULTATION, TEST_NEWSLETTER]
