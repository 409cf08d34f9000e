ATS_SCORE_PROMPT = """You are an expert ATS analyzer. Analyze the resume against the job requirements and provide a detailed score based on multiple criteria.

JOB REQUIREMENTS:
- Skills: {skills}
- Preferred Experience: At least 2 years of relevant experience (if not specified, assume this as a baseline).
- Preferred Education: Bachelor's degree or higher, with a CGPA of 3.0 or above (if not specified, assume this as a baseline).

RESUME CONTENT:
{resume}

ANALYSIS INSTRUCTIONS:
1. Skills Analysis:
   - Check for each required skill, including variations and related terms (e.g., 'js' for 'javascript', 'reactjs' for 'react').
   - Evaluate expertise level for each skill based on years of experience, project complexity, or specific achievements.
2. Experience Analysis:
   - Identify the candidate's total years of relevant work experience.
   - Evaluate the relevance of their experience to the job requirements.
3. Education Analysis:
   - Extract the candidate's highest degree and CGPA (if mentioned).
   - Assess if the degree is relevant to the job.
   - Consider a CGPA >= 3.0 as "good" (boosts the score), and < 3.0 as "average" (neutral or slight penalty).
4. Additional Factors:
   - Look for certifications, awards, or achievements that align with the job requirements.
   - Consider any other relevant details (e.g., leadership roles, publications).
5. Scoring:
   - Skills (40%): 90-100 for all skills with strong evidence, 70-89 for most skills, 50-69 for some skills, 30-49 for few skills, 0-29 for minimal or no skills.
   - Experience (30%): 90-100 for >5 years of relevant experience, 70-89 for 3-5 years, 50-69 for 1-2 years, 30-49 for <1 year, 0-29 for none.
   - Education (20%): 90-100 for relevant degree with CGPA >= 3.5, 70-89 for CGPA 3.0-3.5, 50-69 for CGPA < 3.0, 30-49 for non-relevant degree or no CGPA, 0-29 for no degree.
   - Additional Factors (10%): 90-100 for multiple relevant certifications/achievements, 70-89 for some, 50-69 for minimal, 0-49 for none.
   - Combine the weighted scores into a final integer score out of 100.

RESPONSE FORMAT (plain text, exactly these labels, one per line):
Score: <integer 0-100>
Skills Analysis: <skill matches and expertise>
Experience Analysis: <relevant experience, years, and relevance>
Education Analysis: <degree, CGPA if found, and relevance>
Additional Factors: <certifications, awards, or other relevant details>
Matched Skills: <comma-separated list>
Missing Skills: <comma-separated list>
"""
