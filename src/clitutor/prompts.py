"""Per-technology prompt builders and the static registry that resolves them."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .errors import ValidationError
from .models import Lesson

INITIAL_LESSON_COUNT = 30
EXTENSION_LESSON_COUNT = 15

CHAT_TEMPLATE_JSON = """<|im_start|>system
You are a helpful assistant that only outputs valid JSON.<|im_end|>
<|im_start|>user
{content}<|im_end|>
<|im_start|>assistant
"""

CHAT_TEMPLATE_TEXT = """<|im_start|>system
You are a helpful assistant.<|im_end|>
<|im_start|>user
{content}<|im_end|>
<|im_start|>assistant
"""

LESSON_FIELDS = '"title", "concept", "command", "example_output", "practiceCommand", and "hint"'


@dataclass(frozen=True)
class MarkupTag:
    """Semantic tag the model wraps around entities inside `example_output`."""

    name: str
    meaning: str


class PromptStrategy:
    """Renders prompt text for one technology.

    Subclasses only supply data: display name, module topics and titles, the
    markup vocabulary and an example lesson. All prompt wording is shared.
    """

    name: str = ""
    persona: str = ""
    module_topics: dict[str, str] = {}
    module_titles: dict[str, str] = {}
    tags: tuple[MarkupTag, ...] = ()
    example_lesson: str = ""

    def technology_name(self) -> str:
        return self.name

    def available_modules(self) -> dict[str, str]:
        """Module key -> display title."""
        return dict(self.module_titles)

    def markup_tags(self) -> tuple[str, ...]:
        return tuple(tag.name for tag in self.tags)

    def build_initial_module_prompt(self, module_key: str) -> str:
        topic = self._topic(module_key)
        tag_lines = "\n".join(f"- {tag.meaning}: <{tag.name}>...</{tag.name}>" for tag in self.tags)
        content = f"""You are a curriculum generation bot. Your only function is to output a single, valid JSON object.
Generate a curriculum for a developer learning about '{topic}'.
The JSON object must have a "moduleName" string and a "lessons" array.
The "lessons" array must contain exactly {INITIAL_LESSON_COUNT} lesson objects.
Each lesson object MUST contain {LESSON_FIELDS}.

- "practiceCommand": This MUST be the *exact*, simple command the user should type to practice. \
For conceptual lessons, this can be an empty string "".
- "hint": A short, helpful tip related to the command's syntax. For conceptual lessons, this can be an empty string "".

Inside "example_output", you MUST use these XML tags for colorization:
{tag_lines}

EXAMPLE LESSON OBJECT:
{self.example_lesson}

Output only the raw JSON."""
        return CHAT_TEMPLATE_JSON.format(content=content)

    def build_more_lessons_prompt(self, module_key: str, existing_lessons: Sequence[Lesson]) -> str:
        topic = self._topic(module_key)
        learned = ", ".join(f"`{lesson.command}`" for lesson in existing_lessons)
        tag_names = ", ".join(f"<{tag.name}>" for tag in self.tags)
        content = f"""You are a curriculum generation bot outputting a single, valid JSON object.
Generate a new curriculum with {EXTENSION_LESSON_COUNT} more lessons for a developer learning about '{topic}'.
CRITICAL: The user has already learned these commands: {learned}. You MUST NOT create lessons for these commands.
Introduce NEW, more advanced, or related commands and concepts.
Each lesson object must contain {LESSON_FIELDS}.

- "practiceCommand": The exact command to practice, or "" if not applicable.
- "hint": A helpful tip, or "" if not applicable.

Use the required {tag_names} tags in the example_output.
Output only the raw JSON."""
        return CHAT_TEMPLATE_JSON.format(content=content)

    def build_question_prompt(self, question: str) -> str:
        content = f"""You are an expert {self.persona} tutor. \
Provide a clear, concise explanation for the following user question.
Use markdown for code blocks and emphasis.
Question: "{question}\""""
        return CHAT_TEMPLATE_TEXT.format(content=content)

    def build_summary_prompt(self, module_name: str, lessons: Sequence[Lesson]) -> str:
        titles = ", ".join(lesson.title for lesson in lessons)
        content = f"""You are a helpful assistant who creates concise study guides.
Generate a markdown-formatted summary for a learning module named "{module_name}".
The module covered these topics: {titles}.
Organize the summary with clear headings for the key concepts. \
Do not summarize each lesson individually; synthesize the core ideas."""
        return CHAT_TEMPLATE_TEXT.format(content=content)

    def _topic(self, module_key: str | None) -> str:
        topic = self.module_topics.get(module_key) if module_key is not None else None
        if topic is None:
            raise ValidationError(f"Invalid {self.name} module key: {module_key!r}")
        return topic


class GitPrompts(PromptStrategy):
    name = "Git"
    persona = "Git"
    module_topics = {
        "basics": "the absolute basics of Git, covering init, add, commit, status, and log",
        "branching": "Git branching, covering create, switch, merge, and delete branches",
        "remotes": "working with remote Git repositories, covering clone, push, pull, and fetch",
        "history": "inspecting and rewriting Git history, covering rebase, amend, and reset",
    }
    module_titles = {
        "basics": "Git Basics: The First Steps",
        "branching": "Mastering Git Branching",
        "remotes": "Working with Remote Repositories",
        "history": "Inspecting and Rewriting History",
    }
    tags = (
        MarkupTag("branch", "Branch names"),
        MarkupTag("file", "Filenames/paths"),
        MarkupTag("commit", "Commit hashes"),
    )
    example_lesson = """{
  "title": "Adding a File",
  "concept": "The 'git add' command stages changes for the next commit.",
  "command": "git add <filename>",
  "example_output": "...",
  "practiceCommand": "git add README.md",
  "hint": "Don't forget to specify which file you want to add after the command."
}"""


class DockerPrompts(PromptStrategy):
    name = "Docker"
    persona = "Docker and containerization"
    module_topics = {
        "basics": "the absolute basics of Docker, covering running containers, `ps`, `logs`, and `stop`",
        "images": "building and managing Docker images, covering `build`, `tag`, `push`, `pull`, and `rmi`",
        "volumes": "managing persistent data with Docker volumes, covering `volume create`, `ls`, `inspect`, "
        "and bind mounts",
        "networking": "Docker container networking, covering bridge networks, port mapping, and `network create`",
    }
    module_titles = {
        "basics": "Docker Basics: First Containers",
        "images": "Building and Managing Images",
        "volumes": "Persistent Data with Volumes",
        "networking": "Container Networking",
    }
    tags = (
        MarkupTag("image", "Image names"),
        MarkupTag("container", "Container names/IDs"),
        MarkupTag("volume", "Volume/Network names"),
    )
    example_lesson = """{
  "title": "Listing Running Containers",
  "concept": "The 'docker ps' command shows containers that are currently running.",
  "command": "docker ps",
  "example_output": "CONTAINER ID   IMAGE   NAMES\\n<container>a1b2c3d4</container>   <image>nginx:latest</image>",
  "practiceCommand": "docker ps",
  "hint": "Add -a to include stopped containers."
}"""


class KubernetesPrompts(PromptStrategy):
    name = "Kubernetes"
    persona = "Kubernetes"
    module_topics = {
        "core": "the core concepts of Kubernetes, covering Pods, Deployments, and Services with kubectl",
        "workloads": "managing application workloads, covering scaling, rollouts, and rollbacks of Deployments",
        "config": "configuring applications with ConfigMaps and Secrets",
        "discovery": "service discovery and basic networking in Kubernetes using Services and Labels",
    }
    module_titles = {
        "core": "Kubernetes Core Concepts",
        "workloads": "Managing Workloads",
        "config": "Configuration & Secrets",
        "discovery": "Service Discovery",
    }
    tags = (
        MarkupTag("resource", "Resource names (like a pod or deployment name)"),
        MarkupTag("type", "Resource types (like 'pod', 'deployment', 'service')"),
        MarkupTag("namespace", "Namespaces"),
    )
    example_lesson = """{
  "title": "Listing Pods",
  "concept": "'kubectl get pods' lists the pods in the current namespace.",
  "command": "kubectl get pods",
  "example_output": "NAME   READY   STATUS\\n<resource>web-7d4b9</resource>   1/1   Running",
  "practiceCommand": "kubectl get pods",
  "hint": "Use -n to target a different namespace."
}"""


class LinuxPrompts(PromptStrategy):
    name = "Linux"
    persona = "Linux command line"
    module_topics = {
        "files": "navigating and managing Linux files and directories, covering ls, cd, cp, mv, rm, and mkdir",
        "permissions": "Linux file permissions and ownership, covering chmod, chown, and umask",
        "processes": "Linux process management, covering ps, top, kill, jobs, and nice",
        "text": "Linux text processing and pipes, covering cat, grep, sort, uniq, wc, and redirection",
    }
    module_titles = {
        "files": "Linux Files & Directories",
        "permissions": "Understanding Permissions",
        "processes": "Process Management",
        "text": "Text Processing & Pipes",
    }
    tags = (
        MarkupTag("file", "Filenames/paths"),
        MarkupTag("user", "Users and groups"),
        MarkupTag("process", "Process names/PIDs"),
    )
    example_lesson = """{
  "title": "Listing Files",
  "concept": "The 'ls' command lists the contents of a directory.",
  "command": "ls -la",
  "example_output": "drwxr-xr-x 2 <user>alice</user> <user>staff</user> 4096 <file>notes</file>",
  "practiceCommand": "ls -la",
  "hint": "-l gives the long format and -a includes hidden files."
}"""


STRATEGIES: dict[str, PromptStrategy] = {
    "docker": DockerPrompts(),
    "git": GitPrompts(),
    "kubernetes": KubernetesPrompts(),
    "linux": LinuxPrompts(),
}


def resolve_strategy(technology: str | None, strategies: dict[str, PromptStrategy] | None = None) -> PromptStrategy:
    """Look up a strategy by technology key, ignoring case and surrounding whitespace."""
    registry = STRATEGIES if strategies is None else strategies
    key = (technology or "").strip().lower()
    strategy = registry.get(key)
    if strategy is None:
        raise ValidationError(f"Technology '{technology}' is not supported.")
    return strategy


def list_technologies(strategies: dict[str, PromptStrategy] | None = None) -> list[tuple[str, PromptStrategy]]:
    """Return registered (key, strategy) pairs sorted by key."""
    registry = STRATEGIES if strategies is None else strategies
    return sorted(registry.items())
