# src/risk/constants.py
from __future__ import annotations

# Band boundaries (closed-open): [0, LOW_MAX) LOW, [LOW_MAX, MODERATE_MAX) MODERATE, rest HIGH.
LOW_MAX = 0.40
MODERATE_MAX = 0.60

# Inclusion sill for the locally computed "top risk factors" panel.
# Intentionally not aligned with LOW_MAX; kept as the product shipped it.
RISK_FACTOR_SILL = 0.45

# Ordered alias keys per canonical field. First present, non-null key wins.
FIELD_ALIASES = {
    "probability": ["probability", "churnProbability", "churn_probability", "probabilidade"],
    "primaryRiskFactor": ["primary_risk_factor", "primaryRiskFactor", "main_factor", "fator_risco"],
    "primaryRetentionFactor": [
        "primary_retention_factor",
        "primaryRetentionFactor",
        "secondary_factor",
        "secondaryFactor",
        "retention_factor",
    ],
    "clientId": ["clientId", "userId", "user_id"],
    "riskLevel": ["risk_level", "riskLevel"],
    "suggestedAction": ["recommended_action", "suggested_action"],
}

NUMERIC_FIELDS = {"probability"}

# Nested diagnosis object on /predict responses.
DIAGNOSIS_KEY = "ai_diagnosis"
DIAGNOSIS_FIELDS = {
    "primaryRiskFactor": "primary_risk_factor",
    "primaryRetentionFactor": "primary_retention_factor",
    "suggestedAction": "suggested_action",
}

ABSENT_MARKER = "N/A"

# Label families for upstream-provided risk_level text, in priority order.
LABEL_FAMILIES = [
    ("LOW", ("low", "baixo")),
    ("MODERATE", ("mod", "moder")),
    ("HIGH", ("high", "alto")),
]

# Display sentinels
UNKNOWN_LABEL = "Desconhecido"
NO_RISK_FACTOR = "Nenhum fator de risco relevante identificado"
NO_RETENTION_FACTOR = "Nenhum fator relevante identificado"
MODERATE_PROFILE = "Perfil de Risco Moderado"

# Feature-pipeline prefixes stripped before translation.
PIPELINE_PREFIXES = ["remainder__", "num__", "cat__"]

# Human-friendly names for model features (centralized for consistent display).
FEATURE_LABELS = {
    "gender": "Gênero",
    "gender_Male": "Gênero Masculino",
    "gender_Female": "Gênero Feminino",
    "age": "Idade",
    "Age": "Idade",
    "country": "País",
    "country_FR": "País França",
    "country_IN": "País Índia",
    "subscription_type": "Tipo de Assinatura",
    "subscription_type_Student": "Assinatura Estudante",
    "listening_time": "Tempo de Escuta",
    "songs_played_per_day": "Músicas por Dia",
    "skip_rate": "Taxa de Pulagem",
    "device_type": "Tipo de Dispositivo",
    "ads_listened_per_week": "Anúncios por Semana",
    "offline_listening": "Uso Offline",
    "is_churned": "Cancelamento (Churn)",
    "songs_per_minute": "Músicas por Minuto",
    "ad_intensity": "Intensidade de Anúncios",
    "frustration_index": "Índice de Frustração",
    "is_heavy_user": "Usuário Intenso (Heavy)",
    "premium_no_offline": "Premium sem Offline",
    "premium_sub_month": "Meses de Assinatura Premium",
    "fav_genre": "Gênero Favorito",
}

# Retention playbook, keyed by display name.
FACTOR_ACTIONS = {
    "Gênero": "Ajustar campanhas de marketing para segmentação de gênero específica.",
    "Gênero Masculino": "Ajustar campanhas de marketing para segmentação de gênero masculino.",
    "Gênero Feminino": "Ajustar campanhas de marketing para segmentação de gênero feminino.",
    "Idade": "Oferecer planos adequados à faixa etária (ex: Universitário ou Família).",
    "País": "Localizar conteúdo e ajustar preços conforme a moeda e região.",
    "País França": "Localizar conteúdo e ajustar preços conforme a moeda e região francesa.",
    "País Índia": "Localizar conteúdo e ajustar preços conforme a moeda e região indiana.",
    "Tipo de Assinatura": "Sugerir upgrade para planos com mais benefícios.",
    "Assinatura Estudante": (
        "Apresentar planos exclusivos para estudantes e, após a formatura, "
        "oferecer descontos no plano premium ou plano pré-pago."
    ),
    "Tempo de Escuta": "Enviar recomendações personalizadas para aumentar o engajamento.",
    "Músicas por Dia": "Notificações push com novas playlists baseadas no comportamento diário.",
    "Taxa de Pulagem": "Recalibrar algoritmo de recomendação para reduzir pulos.",
    "Tipo de Dispositivo": "Otimizar interface e bugs específicos para o hardware do usuário.",
    "Anúncios por Semana": (
        "Oferecer teste Premium para aliviar interrupções de áudio. "
        "Após o teste, oferecer plano premium ou plano pré-pago."
    ),
    "Uso Offline": "Destacar funcionalidades de download em campanhas educacionais.",
    "Músicas por Minuto": "Sugerir playlists focadas em ritmos específicos.",
    "Intensidade de Anúncios": (
        "Reduzir carga de anúncios temporariamente para reter o usuário. "
        "Ofertar planos sem anúncios."
    ),
    "Índice de Frustração": "Enviar pesquisa de satisfação com cupom de desconto imediato.",
    "Usuário Intenso (Heavy)": "Oferecer programa de recompensas e acesso antecipado a recursos.",
    "Premium sem Offline": "Sugerir plano Premium completo com suporte a downloads.",
}

# Band display metadata for the presentation layer.
BAND_DISPLAY = {
    "LOW": {
        "label": "Baixo Risco de Cancelamento",
        "badge": "BAIXO RISCO",
        "range": "0–40% → Baixo Risco",
        "color": "#1DB954",
    },
    "MODERATE": {
        "label": "Risco Moderado de Cancelamento",
        "badge": "RISCO MODERADO",
        "range": "40–60% → Risco Moderado",
        "color": "#ffcc00",
    },
    "HIGH": {
        "label": "Alto Risco de Cancelamento",
        "badge": "ALTO RISCO",
        "range": "60–100% → Alto Risco",
        "color": "#ff4d4d",
    },
    "UNKNOWN": {
        "label": "Risco Indefinido",
        "badge": "INDEFINIDO",
        "range": "Faixa não disponível",
        "color": "#b3b3b3",
    },
}
