"""
Prompt Vault - Centralized prompt management
"""

import logging
from typing import Dict, List

from .models import ValidatorCategory, ValidatorSpec

logger = logging.getLogger(__name__)

CATEGORY_FOCUS = {
    ValidatorCategory.LOGIC: (
        "Focus on logical consistency, reasoning validity, and detecting contradictions. "
        "Check if the proposition follows logical principles."
    ),
    ValidatorCategory.FACT: (
        "Focus on factual accuracy, data verification, and source reliability. "
        "Check if the proposition is factually correct."
    ),
    ValidatorCategory.CONTEXT: (
        "Focus on contextual appropriateness, historical accuracy, and domain-specific knowledge. "
        "Check if the proposition fits the proper context."
    ),
    ValidatorCategory.COMPREHENSIVE: (
        "Focus on overall assessment, bias detection, and completeness. "
        "Provide a comprehensive evaluation of the proposition."
    ),
}


class PromptVault:
    """Centralized prompt management system"""

    def __init__(self):
        self.prompts: Dict[str, str] = {}
        self._load_default_prompts()

    def _load_default_prompts(self):
        """Load default prompts"""
        self.prompts = {
            "validator": """You are a specialized AI validator: "{validator_name}" in the {category} category.

Evaluate this proposition: "{proposition}"

{focus}

Respond only in JSON format:
{{
  "verdict": true or false,
  "confidence": 0-100,
  "reasoning": "brief evidence in 1-2 sentences"
}}""",
            "proposition_split": """Please split the following text into verifiable independent propositions (fact-checkable statements).
Each proposition should contain one specific fact and should be able to be judged as true/false.

Rules:
1. Write each proposition on one line
2. Start with "- " in list format
3. Exclude subjective opinions or ambiguous expressions
4. Include only specific and verifiable facts

Text: {text}

Proposition list:""",
            "answer": """Please answer the following question in a simple and fun way, as if explaining to a 5-year-old child. Always respond in English.
Tone and Style:
- Use friendly and warm language
- Use simple words instead of difficult ones
- Include analogies
- Explain in 2-3 sentences clearly and concisely

Question: {question}

Child-friendly answer in English:""",
        }

    def get_prompt(self, prompt_name: str, **kwargs) -> str:
        """Get a prompt by name with variable substitution"""
        if prompt_name not in self.prompts:
            logger.error(f"Prompt '{prompt_name}' not found")
            raise KeyError(prompt_name)
        return self.prompts[prompt_name].format(**kwargs)

    def validator_prompt(self, validator: ValidatorSpec, proposition: str) -> str:
        """Category-specific prompt for one validator"""
        return self.get_prompt(
            "validator",
            validator_name=validator.name,
            category=validator.category.value,
            proposition=proposition,
            focus=CATEGORY_FOCUS[validator.category],
        )

    def add_prompt(self, name: str, template: str):
        """Add a new prompt"""
        self.prompts[name] = template
        logger.info(f"Added prompt '{name}'")

    def list_prompts(self) -> List[str]:
        """List all available prompts"""
        return list(self.prompts.keys())
