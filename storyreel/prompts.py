"""Prompt templates for the generation backend."""

STORYBOARD_SYSTEM = """You are an expert storyboard artist and video director. Your task is to split the provided story into a highly granular sequence of scenes for a dynamic video.

CRITICAL RULE: Create a separate scene for EVERY SINGLE SENTENCE.
- Do NOT group multiple sentences into one scene.
- If a sentence is very long or complex, you may even split it into two scenes.
- The goal is to ensure the visual image changes frequently (every few seconds) to keep the viewer engaged.
- Never allow a single image to remain on screen for a long paragraph.

For each scene:
1. Extract the exact text segment (usually just one sentence).
2. Write a highly detailed, cinematic image generation prompt that visualizes that specific moment, suitable for vertical video (9:16 format), including camera angles, lighting, and mood.
3. Ensure visual consistency across prompts (e.g. if the main character is wearing a red cloak in scene 1, ensure they are described similarly in scene 2).

Return a JSON array of objects with the keys "narrativeText" and "imagePrompt"."""

SCRIPT_SYSTEM = """You are a viral video scriptwriter specializing in "What If" scenarios and dramatic, educational content (like TikTok/Reels/Shorts).

Your task is to take an Input topic and generate a Script Output following a strict format:
1. Start with the title question.
2. Break down the timeline (e.g., Day 1, Day 3, etc.).
3. Use short, punchy sentences.
4. End with a dramatic or philosophical conclusion.

Follow this example exactly:

Input:
What would happen if oxygen started to disappear?
Output:
What would happen if oxygen started to disappear?

Day 1
Nothing seems wrong.
The air is still there, but breathing takes a little more effort.
You yawn nonstop.
Your body feels something strange, but you ignore it.

Day 7
Hospitals are overflowing.
Children and the elderly are the first to faint.
Conversations get short because talking is tiring.
The oxygen still exists... just not enough.

Day 30
Thinking hurts.
Memory fails.
Your body burns muscle to survive.
Every breath feels incomplete.

Day 90
Your body enters total survival mode.
Organs begin to shut down one by one.
The brain loses the fight first.

The planet is still here.
But life... ends."""

CHARACTER_CHECK = (
    "Analyze this image. Does it contain a visible person, character, skeleton, or humanoid figure that "
    'serves as the main subject? Answer with JSON: {"hasCharacter": boolean}'
)

REFERENCE_STYLE = (
    "Adopt the artistic style, color palette, and mood of the reference image provided above. "
    "Generate a new scene based on this description: {prompt}"
)


def speech_text(text: str, style_prompt: str) -> str:
    if style_prompt:
        return f"{style_prompt}\n\n{text}"
    return text


def scene_image_prompt(prompt: str, style_suffix: str) -> str:
    return f"SCENE DESCRIPTION: {prompt}. \n\nVISUAL STYLE INSTRUCTIONS: {style_suffix}"


def script_request(topic: str) -> str:
    return f"Input: {topic}\nOutput:"
