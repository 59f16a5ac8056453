PROJECT_NAME = "OpLoop-AI"
API_V1_STR = "/api/v1"
