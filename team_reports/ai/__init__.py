"""
Team Diagnostics Report Service
AI module: team report prompt assembly and LLM access.

Submodules:
    - module_registry: Ordered catalog of selectable report modules
    - renumber: MODULE <n> marker rewriting
    - preamble: Static base instructional prompt
    - prompt_compiler: (team aggregate, selection) -> prompt string
    - gateway: LLM Gateway (provider routing, usage logging)
"""
