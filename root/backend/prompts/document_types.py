"""
Built-in document type catalog.

Used whenever the document_types table is empty or unreachable. Each prompt
template lists its sections after "Include:" so they can be extracted for
section-by-section generation.
"""

BUILTIN_DOCUMENT_TYPES = [
    {
        "id": "marketing_plan",
        "name": "Marketing Plan",
        "description": "Comprehensive strategy for customer acquisition, retention, and growth",
        "icon": "FileText",
        "document_order": 1,
        "prompt_template": """Create a detailed marketing plan for a {business_type} business targeting {target_audience} with a monthly budget of {budget}. The business aims to {goals} and faces challenges like {challenges}. Include:
1. Executive Summary
2. Market Analysis
3. Target Market Segmentation
4. Marketing Channels & Tactics
5. Budget Allocation
6. Implementation Timeline
7. Success Metrics""",
    },
    {
        "id": "brand_guidelines",
        "name": "Brand Guidelines",
        "description": "Visual identity, messaging, and tone guidelines for consistency",
        "icon": "Target",
        "document_order": 2,
        "prompt_template": """Create brand guidelines for a {business_type} business targeting {target_audience}. Consider their goals to {goals}. Include:
1. Brand Story & Values
2. Voice & Tone
3. Messaging Framework
4. Visual Style Guide
5. Communication Guidelines
6. Brand Application Examples""",
        "required_info": {
            "questions": [
                {"id": "brand_colors", "question": "What are your current brand colors, if any?", "placeholder": "e.g. navy and coral"},
                {"id": "brand_personality", "question": "Which three words describe your brand personality?", "placeholder": "e.g. bold, friendly, expert"},
            ]
        },
    },
    {
        "id": "customer_acquisition",
        "name": "Customer Acquisition Strategy",
        "description": "Lead generation methods, marketing channels, and sales funnels",
        "icon": "ShoppingCart",
        "document_order": 3,
        "prompt_template": """Develop a customer acquisition strategy for a {business_type} business with a {budget} monthly budget. Target audience: {target_audience}. Include:
1. Acquisition Channels
2. Lead Generation Tactics
3. Sales Funnel Design
4. Conversion Optimization
5. Cost Per Acquisition Targets
6. Channel Performance Metrics""",
    },
    {
        "id": "pricing_strategy",
        "name": "Pricing Strategy",
        "description": "Pricing models, perceived value, and competitive positioning",
        "icon": "DollarSign",
        "document_order": 4,
        "prompt_template": """Create a pricing strategy for a {business_type} business considering their target market ({target_audience}) and goals ({goals}). Include:
1. Market Position Analysis
2. Pricing Models
3. Value Proposition
4. Competitor Analysis
5. Price Point Recommendations
6. Implementation Plan""",
        "required_info": {
            "questions": [
                {"id": "current_pricing", "question": "What do you currently charge for your main offer?", "placeholder": "e.g. $49/month"},
                {"id": "competitors", "question": "Who are your main competitors and what do they charge?", "placeholder": "e.g. Acme at $59/month"},
            ]
        },
    },
    {
        "id": "sales_strategy",
        "name": "Sales Strategy & Process",
        "description": "Sales approach, outreach, conversion, and follow-ups",
        "icon": "MessageSquare",
        "document_order": 5,
        "prompt_template": """Design a sales strategy for a {business_type} business targeting {target_audience}. Consider their challenges: {challenges}. Include:
1. Sales Process Flow
2. Prospect Qualification
3. Outreach Templates
4. Objection Handling
5. Follow-up Sequences
6. Sales Metrics & KPIs""",
    },
    {
        "id": "audience_personas",
        "name": "Target Audience & Buyer Personas",
        "description": "Ideal customer profiles, pain points, and motivations",
        "icon": "Users",
        "document_order": 6,
        "prompt_template": """Create detailed buyer personas for a {business_type} business targeting {target_audience}. Include:
1. Demographic Details
2. Psychographic Profiles
3. Pain Points & Needs
4. Decision-Making Process
5. Communication Preferences
6. Purchase Behavior""",
    },
    {
        "id": "digital_presence",
        "name": "Website & Digital Presence Strategy",
        "description": "Website optimization, SEO, and digital assets",
        "icon": "Globe",
        "document_order": 7,
        "prompt_template": """Develop a digital presence strategy for a {business_type} business aiming to {goals}. Include:
1. Website Structure & UX
2. SEO Strategy
3. Content Strategy
4. Technical Requirements
5. Digital Asset Management
6. Performance Metrics""",
    },
    {
        "id": "customer_retention",
        "name": "Customer Retention & Loyalty Plan",
        "description": "Strategies to increase customer lifetime value and reduce churn",
        "icon": "Heart",
        "document_order": 8,
        "prompt_template": """Create a customer retention plan for a {business_type} business with {target_audience} as their target market. Include:
1. Customer Journey Mapping
2. Retention Tactics
3. Loyalty Program Design
4. Communication Strategy
5. Churn Prevention
6. Success Metrics""",
    },
    {
        "id": "kpi_tracking",
        "name": "KPIs & Performance Tracking",
        "description": "Key metrics to track marketing success and optimize campaigns",
        "icon": "BarChart3",
        "document_order": 9,
        "prompt_template": """Design a KPI tracking framework for a {business_type} business with goals to {goals}. Include:
1. Core KPIs
2. Measurement Methods
3. Reporting Framework
4. Performance Benchmarks
5. Optimization Process
6. ROI Calculations""",
    },
    {
        "id": "advertising_plan",
        "name": "Advertising & Paid Media Plan",
        "description": "Budget allocation, ad platforms, and campaign objectives",
        "icon": "Megaphone",
        "document_order": 10,
        "prompt_template": """Create an advertising plan for a {business_type} business with a {budget} monthly budget targeting {target_audience}. Include:
1. Platform Selection
2. Budget Allocation
3. Campaign Structure
4. Ad Creative Guidelines
5. Testing Strategy
6. Performance Metrics""",
    },
    {
        "id": "pr_awareness",
        "name": "PR & Brand Awareness Plan",
        "description": "Outreach efforts, press releases, and reputation management",
        "icon": "Share2",
        "document_order": 11,
        "prompt_template": """Develop a PR and brand awareness plan for a {business_type} business aiming to {goals}. Include:
1. PR Strategy
2. Media Outreach Plan
3. Content Calendar
4. Crisis Management
5. Influencer Strategy
6. Success Metrics""",
    },
    {
        "id": "outbound_marketing",
        "name": "Outbound Marketing Plan",
        "description": "Cold emails, direct mail, cold calling, and LinkedIn outreach",
        "icon": "Mail",
        "document_order": 12,
        "prompt_template": """Create an outbound marketing plan for a {business_type} business targeting {target_audience}. Include:
1. Channel Strategy
2. Message Templates
3. Outreach Sequences
4. Response Handling
5. Follow-up Process
6. Performance Tracking""",
    },
]
