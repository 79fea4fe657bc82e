from enum import StrEnum

class ModelName(StrEnum):
    CLAUDE = "claude"
    CHATGPT = "chatgpt"
    GEMINI = "gemini"

class ActionId(StrEnum):
    BUTTON_CLICK = "button_click"
    SELECT_MENU = "select_menu"
    FEEDBACK_POSITIVE = "dify_feedback_positive"
    FEEDBACK_NEGATIVE = "dify_feedback_negative"
