'''
TutorLedger Backend: lesson generation and prepayment reconciliation for private tutors.
'''
