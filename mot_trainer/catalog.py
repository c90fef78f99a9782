"""Static scenario tables: industries, customer personas and voices."""

from typing import Dict, List, Optional

from mot_trainer.models import Industry, Persona, Scenario, VoiceOption


INDUSTRIES: List[Industry] = [
    Industry("retail", "零售服务", "ShoppingCart", "处理退换货、物流延迟及会员积分纠纷。"),
    Industry("banking", "金融银行业", "Landmark", "涉及理财咨询、转账失败或账户异常提醒。"),
    Industry("telecom", "电信通讯", "Radio", "处理资费账单争议、网络覆盖及宽带报修。"),
    Industry("hospitality", "酒店旅游", "Hotel", "预订冲突、客房质量及加急服务响应。"),
    Industry("freight", "货物运输代理", "Truck", "处理国际物流延迟、报关异常及运费核算纠纷。"),
]

PERSONAS: List[Persona] = [
    Persona(
        id="angry_elder",
        name="愤怒的高龄客户",
        avatar="https://picsum.photos/seed/p1/200/200",
        difficulty="高",
        traits=("传统保守", "极度焦虑"),
        description="性格固执、情绪化。对数字技术感到挫败，需要极大的耐心和同理心。",
    ),
    Persona(
        id="busy_pro",
        name="精明的商务人士",
        avatar="https://picsum.photos/seed/p2/200/200",
        difficulty="中",
        traits=("效率优先", "结果导向"),
        description="逻辑清晰，极度关注时间成本和解决方案的有效性，反感场面话。",
    ),
    Persona(
        id="tech_youth",
        name="科技达人青年",
        avatar="https://picsum.photos/seed/p3/200/200",
        difficulty="低",
        traits=("快速反馈", "网络敏感"),
        description="善于使用社交媒体发声，对流程非常熟悉，希望获得个性化待遇。",
    ),
]

VOICES: List[VoiceOption] = [
    VoiceOption("v1", "标准男声", "沉稳、专业", "Kore"),
    VoiceOption("v2", "标准女声", "亲切、温和", "Puck"),
    VoiceOption("v3", "活力女声", "热情、迅速", "Charon"),
    VoiceOption("v4", "严肃男声", "正式、威严", "Fenrir"),
]

_INDUSTRY_BY_ID: Dict[str, Industry] = {i.id: i for i in INDUSTRIES}
_PERSONA_BY_ID: Dict[str, Persona] = {p.id: p for p in PERSONAS}
_VOICE_BY_ID: Dict[str, VoiceOption] = {v.id: v for v in VOICES}


def get_industry(industry_id: str) -> Optional[Industry]:
    return _INDUSTRY_BY_ID.get(industry_id)


def get_persona(persona_id: str) -> Optional[Persona]:
    return _PERSONA_BY_ID.get(persona_id)


def get_voice(voice_id: str) -> Optional[VoiceOption]:
    return _VOICE_BY_ID.get(voice_id)


def build_scenario(industry_id: str, persona_id: str, voice_id: Optional[str] = None) -> Scenario:
    """Resolve catalog ids into a Scenario.

    Raises:
        KeyError: If any id is not in the catalog
    """
    industry = get_industry(industry_id)
    if industry is None:
        raise KeyError(f"Unknown industry '{industry_id}'")
    persona = get_persona(persona_id)
    if persona is None:
        raise KeyError(f"Unknown persona '{persona_id}'")
    voice = None
    if voice_id:
        voice = get_voice(voice_id)
        if voice is None:
            raise KeyError(f"Unknown voice '{voice_id}'")
    return Scenario(industry=industry, persona=persona, voice=voice)


def catalog_dict() -> Dict[str, list]:
    return {
        "industries": [i.to_dict() for i in INDUSTRIES],
        "personas": [p.to_dict() for p in PERSONAS],
        "voices": [v.to_dict() for v in VOICES],
    }
